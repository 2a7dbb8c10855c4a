import pytest
from pki_helpers import NOW, build_hierarchy


@pytest.fixture
def pki():
    """A fresh root -> intermediate -> leaf hierarchy."""
    return build_hierarchy()


@pytest.fixture
def now():
    return NOW
