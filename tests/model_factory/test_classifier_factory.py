import pytest
from sklearn.discriminant_analysis import LinearDiscriminantAnalysis
from sklearn.ensemble import RandomForestClassifier
from sklearn.linear_model import LogisticRegression
from sklearn.naive_bayes import GaussianNB
from sklearn.neighbors import KNeighborsClassifier
from sklearn.pipeline import Pipeline
from sklearn.preprocessing import StandardScaler
from sklearn.svm import SVC
from reusable_holdout.model_factory import ClassifierFactory

def test_create_plain_model():
    """Short identifiers map to scikit-learn estimators with their defaults."""
    model = ClassifierFactory.create('glm', {'random_state': 42})

    assert isinstance(model, LogisticRegression)
    assert model.C == 1e4
    assert model.random_state == 42

def test_user_params_override_defaults():
    model = ClassifierFactory.create('rf', {'n_estimators': 10, 'random_state': 1})
    assert isinstance(model, RandomForestClassifier)
    assert model.n_estimators == 10

def test_create_scaled_model():
    """Distance and kernel models are wrapped behind a StandardScaler."""
    model = ClassifierFactory.create('svmRadial')

    assert isinstance(model, Pipeline)
    assert isinstance(model.steps[0][1], StandardScaler)
    svc = model.steps[-1][1]
    assert isinstance(svc, SVC)
    assert svc.probability is True

def test_sklearn_name_alias():
    assert isinstance(ClassifierFactory.create('LinearDiscriminantAnalysis'), LinearDiscriminantAnalysis)

def test_unknown_classifier_error():
    with pytest.raises(ValueError, match="Unknown classifier"):
        ClassifierFactory.create('SuperAdvancedAIModel')

def test_parameter_filtering():
    """random_state is dropped for estimators that do not accept it."""
    nb = ClassifierFactory.create('nb', {'random_state': 123})
    assert isinstance(nb, GaussianNB)
    assert not hasattr(nb, 'random_state')

    knn = ClassifierFactory.create('knn', {'n_neighbors': 3, 'random_state': 123})
    estimator = knn.steps[-1][1]
    assert isinstance(estimator, KNeighborsClassifier)
    assert estimator.n_neighbors == 3

def test_get_available_classifiers():
    classifiers = ClassifierFactory.get_available_classifiers()
    for name in ('glm', 'glmnet', 'rf', 'knn', 'svmLinear', 'svmRadial'):
        assert name in classifiers

@pytest.mark.parametrize("name", ClassifierFactory.get_available_classifiers())
def test_every_classifier_exposes_predict_proba(name):
    assert hasattr(ClassifierFactory.create(name), 'predict_proba')
