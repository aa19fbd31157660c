# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src to sys.path so `import opdispatch` works without installing.
"""

import sys
from pathlib import Path

import pytest
from loguru import logger

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

# Also add project root so `tests.fakes` imports
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from opdispatch.core import Bus, Container  # noqa: E402
from tests.fakes import Ledger  # noqa: E402


@pytest.fixture
def ledger():
    return Ledger(balance=100)


@pytest.fixture
def container(ledger):
    c = Container()
    c.instance(Ledger, ledger)
    return c


@pytest.fixture
def bus(container):
    b = Bus.from_container(container)
    container.instance(Bus, b)
    return b


@pytest.fixture
def log_messages():
    """Capture loguru output as a list of formatted lines."""
    messages = []
    sink_id = logger.add(lambda msg: messages.append(str(msg)), level="DEBUG", format="{level} | {message}")
    yield messages
    logger.remove(sink_id)
