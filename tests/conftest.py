import sys
import os
import pytest

# Add the repo root to the path so tests can import the packages directly
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

# The backend reads these at import time.
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['API_KEY'] = 'test-key'

from parts_client.db.repo import Repo  # noqa: E402
from parts_logic.models.types import Part, PartType  # noqa: E402


@pytest.fixture
def repo(tmp_path):
    """A fresh local part catalog."""
    return Repo(str(tmp_path / 'parts.db'))


@pytest.fixture
def make_part():
    """Build an in-memory Part without touching any store."""
    counter = {'n': 0}

    def _make(name, type=PartType.U_SHAPE, dimensions=None, **kwargs):
        counter['n'] += 1
        return Part(
            id=kwargs.pop('id', f'part-{counter["n"]}'),
            name=name,
            type=type,
            dimensions=dimensions or {},
            **kwargs,
        )

    return _make
