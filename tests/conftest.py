import os
import sys
from collections.abc import Callable
from pathlib import Path

import jwt
import pytest

# Make 'src' importable when running tests without installing the package
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

# Deterministic, offline environment BEFORE importing app modules
os.environ.setdefault("APP_DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("APP_ENABLE_TRACING", "false")
os.environ.setdefault("APP_ENABLE_METRICS", "true")
os.environ.setdefault("APP_JWT_SECRET", "test-secret")
os.environ.setdefault("APP_POLICY_PATH", str(SRC_PATH / "config" / "policy.example.yaml"))
os.environ.setdefault("APP_LOGGING_CONFIG_PATH", str(SRC_PATH / "config" / "logging.yaml"))

from db.session import init_db  # noqa: E402
from security.audit import AuditEvent  # noqa: E402
from security.gate import AuthorizationGate  # noqa: E402
from security.policy import StaticAuthPolicy  # noqa: E402
from toolgate import sample_tools  # noqa: E402
from tools.decorators import collect_declarations  # noqa: E402
from tools.registry import ToolRegistry, build_registry  # noqa: E402

init_db()

JWT_SECRET = os.environ["APP_JWT_SECRET"]


class RecordingSink:
    """Audit sink that keeps events in memory."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    def __call__(self, event: AuditEvent) -> None:
        self.events.append(event)


@pytest.fixture()
def sample_registry() -> ToolRegistry:
    """Frozen registry of the shipped sample tools."""
    return build_registry(collect_declarations(sample_tools))


@pytest.fixture()
def policy() -> StaticAuthPolicy:
    return StaticAuthPolicy(
        rules={"echo": "use:echo", "add": "use:math", "divide": "use:math", "word_stats": "use:text"},
        grants={"A": ["use:echo", "use:math"]},
        role_grants={"Writer": ["use:text"]},
        anonymous=["use:echo"],
    )


@pytest.fixture()
def audit_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def gate(policy: StaticAuthPolicy, sample_registry: ToolRegistry, audit_sink: RecordingSink) -> AuthorizationGate:
    return AuthorizationGate(policy, sample_registry.names(), audit_sink=audit_sink)


@pytest.fixture(scope="session")
def make_token() -> Callable[..., str]:
    """Factory minting HS256 tokens signed with the test secret."""

    def _make(subject: str | None = "alice", roles: list[str] | None = None, **extra: object) -> str:
        payload: dict[str, object] = dict(extra)
        if subject:
            payload["sub"] = subject
        if roles is not None:
            payload["roles"] = roles
        return jwt.encode(payload, JWT_SECRET, algorithm="HS256")

    return _make
