# drivedup Test Fixtures
# Pytest fixtures for drivedup tests

import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
import yaml

from drivedup.config.schema import RuntimeConfig
from drivedup.jobs.audit import AuditLog
from drivedup.jobs.scheduler import FileScheduler
from drivedup.jobs.sheet import JobSheet
from drivedup.remote.local import LocalTree
from drivedup.sync.budget import TimeBudget
from drivedup.sync.orchestrator import JobOrchestrator
from drivedup.sync.state import CheckpointManager


class TickingClock:
    """Clock that advances by `step` every time it is read."""

    def __init__(self, start: float = 0.0, step: float = 1.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        value = self.now
        self.now += self.step
        return value


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_tree(root: Path, layout: dict) -> Path:
    """Create files (str values) and folders (dict values) under root."""
    root.mkdir(parents=True, exist_ok=True)
    for name, value in layout.items():
        if isinstance(value, dict):
            build_tree(root / name, value)
        else:
            (root / name).write_text(value, encoding="utf-8")
    return root


def snapshot(root: Path) -> dict[str, str]:
    """Relative path -> content for files, '/' for folders."""
    result = {}
    for path in sorted(root.rglob("*")):
        rel = path.relative_to(root).as_posix()
        result[rel] = "/" if path.is_dir() else path.read_text(encoding="utf-8")
    return result


# Folder "F" holds 3 files: f1, f2 and D1/f3
SIMPLE_LAYOUT = {
    "F": {
        "f1.txt": "one",
        "f2.txt": "two",
        "D1": {"f3.txt": "three"},
    }
}

# 7 files across nested folders, one empty folder
NESTED_LAYOUT = {
    "F": {
        "a.txt": "a",
        "b.txt": "b",
        "c.txt": "c",
        "D1": {
            "d.txt": "d",
            "E": {"e.txt": "e", "g.txt": "g"},
        },
        "D2": {},
        "D3": {"h.txt": "h"},
    }
}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary home directory."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("DRIVEDUP_CONFIG", raising=False)
    return home


@pytest.fixture
def store(temp_dir: Path) -> Path:
    """Root directory of the local remote store."""
    path = temp_dir / "store"
    path.mkdir()
    return path


@pytest.fixture
def state_dir(temp_dir: Path) -> Path:
    """Directory for checkpoint, job sheet, schedule and audit log."""
    path = temp_dir / "state"
    path.mkdir()
    return path


@pytest.fixture
def remote(store: Path) -> LocalTree:
    """Local remote tree with small pages to exercise cursors."""
    return LocalTree(store, page_size=2)


@pytest.fixture
def audit(state_dir: Path) -> AuditLog:
    return AuditLog(state_dir / "logs.csv")


@pytest.fixture
def sheet(state_dir: Path) -> JobSheet:
    return JobSheet(state_dir / "jobs.yaml")


@pytest.fixture
def checkpoints(state_dir: Path) -> CheckpointManager:
    return CheckpointManager(state_dir / "checkpoint.yaml")


@pytest.fixture
def scheduler(state_dir: Path) -> FileScheduler:
    return FileScheduler(state_dir / "resume.yaml")


@pytest.fixture
def runtime_config() -> RuntimeConfig:
    return RuntimeConfig()


@pytest.fixture
def ticking_budget() -> Callable[[int], TimeBudget]:
    """Budget factory: a budget of N allows N - 1 checks before it expires."""

    def factory(checks: int) -> TimeBudget:
        return TimeBudget(checks, clock=TickingClock())

    return factory


@pytest.fixture
def make_orchestrator(
    runtime_config: RuntimeConfig,
    remote: LocalTree,
    sheet: JobSheet,
    checkpoints: CheckpointManager,
    scheduler: FileScheduler,
    audit: AuditLog,
) -> Callable[..., JobOrchestrator]:
    """Orchestrator factory over the shared stores."""

    def factory(**kwargs) -> JobOrchestrator:
        return JobOrchestrator(
            kwargs.pop("runtime", runtime_config),
            kwargs.pop("remote", remote),
            sheet,
            checkpoints,
            scheduler,
            audit,
            **kwargs,
        )

    return factory


@pytest.fixture
def sample_config(store: Path, state_dir: Path) -> dict:
    """Create sample configuration dict."""
    return {
        "backend": {
            "type": "local",
            "local_root": str(store),
            "page_size": 2,
        },
        "runtime": {
            "time_limit_seconds": 330,
            "execution_ceiling_seconds": 360,
            "resume_delay_seconds": 0,
        },
        "storage": {
            "state_dir": str(state_dir),
        },
        "output": {"verbose": False, "colored": False},
    }


@pytest.fixture
def config_file(temp_home: Path, sample_config: dict, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a configuration file and point DRIVEDUP_CONFIG at it."""
    config_dir = temp_home / ".config" / "drivedup"
    config_dir.mkdir(parents=True)
    config_path = config_dir / "config.yaml"

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(sample_config, f, default_flow_style=False)

    monkeypatch.setenv("DRIVEDUP_CONFIG", str(config_path))
    return config_path
