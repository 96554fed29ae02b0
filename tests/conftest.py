import pytest

from app import app as flask_app
from layercal.model import Model


@pytest.fixture
def app():
    flask_app.config.update(TESTING=True)
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_model():
    """Build a model from kinds or (kind, {field: value}) pairs; ids are layer_0, layer_1, ..."""
    def build(*entries):
        model = Model()
        for i, entry in enumerate(entries):
            kind, overrides = (entry, {}) if isinstance(entry, str) else entry
            layer = model.add_layer(kind, layer_id=f"layer_{i}")
            for key, value in overrides.items():
                layer.update(key, value)
        return model
    return build
