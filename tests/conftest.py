import os

import pytest
from fastapi.testclient import TestClient

# Keep the module-level app in task_api.main off the filesystem
os.environ.setdefault("DATABASE_URL", "memory://")

from task_api.db import SQLiteTaskStorage  # noqa: E402
from task_api.main import create_app  # noqa: E402
from task_api.repositories import InMemoryTaskStorage  # noqa: E402


@pytest.fixture(params=["memory", "sqlite"])
def storage(request, tmp_path):
    """Fresh storage handle for each test, once per backend."""
    if request.param == "sqlite":
        backend = SQLiteTaskStorage(str(tmp_path / "tasks.db"))
    else:
        backend = InMemoryTaskStorage()
    yield backend
    backend.close()


@pytest.fixture
def client(storage):
    app = create_app(storage=storage)
    with TestClient(app) as c:
        yield c
