import inspect
from typing import Dict, Any, List, Tuple
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.ensemble import (
    RandomForestClassifier,
    ExtraTreesClassifier,
    GradientBoostingClassifier,
)
from sklearn.linear_model import LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier
from sklearn.pipeline import make_pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVC
from sklearn.tree import DecisionTreeClassifier

class ClassifierFactory:
    """
    Factory mapping classifier identifiers to scikit-learn estimators.

    Identifiers are short method names ('glm', 'rf', 'svmRadial', ...);
    scikit-learn class names are accepted too.
    Every estimator exposes predict_proba so it can be scored by ROC AUC.
    """

    # identifier -> (estimator class, default params)
    CLASSIFIERS: Dict[str, Tuple[type, Dict[str, Any]]] = {
        # Effectively unpenalized logistic regression
        'glm': (LogisticRegression, {'C': 1e4, 'max_iter': 5000}),
        'glmnet': (LogisticRegression, {'C': 1.0, 'max_iter': 5000}),
        'lda': (LinearDiscriminantAnalysis, {}),
        'nb': (GaussianNB, {}),
        'rf': (RandomForestClassifier, {'n_estimators': 200}),
        'extratrees': (ExtraTreesClassifier, {'n_estimators': 200}),
        'gbm': (GradientBoostingClassifier, {}),
        'rpart': (DecisionTreeClassifier, {'min_samples_leaf': 5}),
    }

    # Distance/kernel based models get a StandardScaler in front
    SCALED_CLASSIFIERS: Dict[str, Tuple[type, Dict[str, Any]]] = {
        'knn': (KNeighborsClassifier, {'n_neighbors': 7}),
        'svmLinear': (SVC, {'kernel': 'linear', 'probability': True}),
        'svmRadial': (SVC, {'kernel': 'rbf', 'probability': True}),
    }

    SKLEARN_NAMES = {
        'LogisticRegression': 'glm',
        'LinearDiscriminantAnalysis': 'lda',
        'GaussianNB': 'nb',
        'RandomForestClassifier': 'rf',
        'ExtraTreesClassifier': 'extratrees',
        'GradientBoostingClassifier': 'gbm',
        'DecisionTreeClassifier': 'rpart',
        'KNeighborsClassifier': 'knn',
        'SVC': 'svmRadial',
    }

    @classmethod
    def create(cls, classifier: str, params: Dict[str, Any] = None) -> Any:
        """
        Create and return an unfitted classifier.
        """
        name = cls.SKLEARN_NAMES.get(classifier, classifier)

        if name in cls.CLASSIFIERS:
            model_class, defaults = cls.CLASSIFIERS[name]
            return model_class(**cls._filter_params(model_class, {**defaults, **(params or {})}))

        elif name in cls.SCALED_CLASSIFIERS:
            model_class, defaults = cls.SCALED_CLASSIFIERS[name]
            estimator = model_class(**cls._filter_params(model_class, {**defaults, **(params or {})}))
            return make_pipeline(StandardScaler(), estimator)

        else:
            raise ValueError(f"Unknown classifier: {classifier}. Available: {cls.get_available_classifiers()}")

    @classmethod
    def get_available_classifiers(cls) -> List[str]:
        """Return list of all supported classifier identifiers."""
        return list(cls.CLASSIFIERS.keys()) + list(cls.SCALED_CLASSIFIERS.keys())

    @staticmethod
    def _filter_params(model_class, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove parameters from `params` that are not accepted by `model_class` constructor
        (e.g. random_state for GaussianNB).
        """
        sig = inspect.signature(model_class.__init__)

        valid_keys = [
            p.name for p in sig.parameters.values()
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        ]

        has_kwargs = any(p.kind == p.VAR_KEYWORD for p in sig.parameters.values())

        if has_kwargs:
            return params

        return {k: v for k, v in params.items() if k in valid_keys}
