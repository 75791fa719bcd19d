import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def isolated_logger():
    """Keep loguru sinks from leaking between tests and captured streams."""
    logger.remove()
    yield
    logger.remove()
