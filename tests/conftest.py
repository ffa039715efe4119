import json
import logging
import os
import pathlib
import sys
import pytest


# Ensure repo root is on PYTHONPATH for direct package imports (e.g. `import landledger`).
_REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from landledger.chaincode import LandRegistryChaincode  # noqa: E402
from landledger.config import reset_config_manager  # noqa: E402
from landledger.observability import ROOT_LOGGER_NAME, StructuredHandler, TextHandler  # noqa: E402
from landledger.store import InMemoryStateStore  # noqa: E402


def _env_flag(name: str) -> bool:
    v = (os.environ.get(name) or '').strip().lower()
    return v in {'1', 'true', 'yes', 'y', 'on'}


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: slow correctness tests (skipped unless LANDLEDGER_RUN_SLOW=1)",
    )
    config.addinivalue_line(
        "markers",
        "integration: end-to-end flows through the chaincode surface or CLI",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_slow = _env_flag('LANDLEDGER_RUN_SLOW')

    for item in items:
        if 'slow' in item.keywords and not run_slow:
            item.add_marker(pytest.mark.skip(reason='slow tests skipped; set LANDLEDGER_RUN_SLOW=1 to enable'))


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Every test starts from default configuration with no LANDLEDGER_* overrides."""
    for name in list(os.environ):
        if name.startswith("LANDLEDGER_"):
            monkeypatch.delenv(name)
    manager = reset_config_manager()
    yield manager
    reset_config_manager()


@pytest.fixture(autouse=True)
def detach_log_handlers():
    """Drop handlers installed by configure_logging; they hold a per-test stream."""
    yield
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        if isinstance(handler, (StructuredHandler, TextHandler)):
            root.removeHandler(handler)
    root.setLevel(logging.NOTSET)


@pytest.fixture
def store():
    return InMemoryStateStore()


@pytest.fixture
def chaincode(store, fresh_config):
    cc = LandRegistryChaincode(store, fresh_config.config)
    cc.init(["99"])
    return cc


@pytest.fixture
def registry(chaincode):
    return chaincode.registry


@pytest.fixture
def dump_state(tmp_path):
    """
    Write the decoded state of the given keys to JSON files under tmp_path.

    Lets a failing test leave the intermediate records on disk for
    inspection, one file per key.
    """
    def _dump(store, *keys):
        paths = []
        for key in keys:
            raw = store.get(key)
            path = tmp_path / f"{key}.json"
            path.write_text(
                json.dumps(json.loads(raw) if raw is not None else None, indent=2, sort_keys=True),
                encoding="utf-8",
            )
            paths.append(path)
        return paths
    return _dump
