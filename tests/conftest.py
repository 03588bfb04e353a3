import pytest

from group_analysis.core.config import ConfigManager
from tests.helpers import make_config


@pytest.fixture
def config_manager() -> ConfigManager:
    return make_config()
