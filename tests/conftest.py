import pytest

from producer.repository import HelmetRepository


@pytest.fixture
def repo() -> HelmetRepository:
    return HelmetRepository.seed(seed=7)
