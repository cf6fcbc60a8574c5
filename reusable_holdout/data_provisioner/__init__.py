from .dataset_bundle import DatasetBundle
from .data_provisioner import DataProvisioner

__all__ = ['DatasetBundle', 'DataProvisioner']
