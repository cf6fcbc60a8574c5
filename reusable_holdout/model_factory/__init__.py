from .model_factory import ClassifierFactory

__all__ = ['ClassifierFactory']
