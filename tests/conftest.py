import pytest

from indexclone.backends.memory import MemoryCollection


def make_docs(count: int, field: str = "seq") -> list[dict]:
    """Documents keyed d1..dN with an increasing ordering field."""
    return [{"id": f"d{i}", field: i, "title": f"document {i}"} for i in range(1, count + 1)]


@pytest.fixture
def tmp_config_path(tmp_path):
    """Provide a temporary config file path."""
    return str(tmp_path / "config.yaml")


@pytest.fixture
def source():
    return MemoryCollection(make_docs(10), page_size=2)


@pytest.fixture
def destination():
    return MemoryCollection()
