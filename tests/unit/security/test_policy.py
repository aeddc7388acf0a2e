from __future__ import annotations

from pathlib import Path

import pytest

from security.identity import CallerIdentity
from security.policy import PolicyLoadError, StaticAuthPolicy, load_policy

EXAMPLE_POLICY = Path(__file__).resolve().parents[3] / "src" / "config" / "policy.example.yaml"


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "policy.yaml"
    p.write_text(text, encoding="utf-8")
    return p


@pytest.mark.unit
def test_load_policy_reads_all_sections(tmp_path: Path):
    path = _write(
        tmp_path,
        """
rules:
  echo: use:echo
  add: " use:math "
grants:
  A: [use:echo]
roles:
  Admin: [use:math]
anonymous: [use:echo]
""",
    )
    policy = load_policy(path)
    assert isinstance(policy, StaticAuthPolicy)
    assert policy.required_permission("echo") == "use:echo"
    assert policy.required_permission("add") == "use:math"
    assert policy.required_permission("missing") is None
    assert policy.permissions_for(CallerIdentity.of("A")) == frozenset({"use:echo"})
    assert policy.permissions_for(CallerIdentity.of("X", roles=["ADMIN"])) == frozenset({"use:math"})
    assert policy.permissions_for(CallerIdentity.anonymous()) == frozenset({"use:echo"})


@pytest.mark.unit
def test_empty_file_is_an_empty_policy(tmp_path: Path):
    policy = load_policy(_write(tmp_path, ""))
    assert dict(policy.rules) == {}


@pytest.mark.unit
def test_shipped_example_policy_loads():
    policy = load_policy(EXAMPLE_POLICY)
    assert policy.required_permission("clock.now") == "tools.clock"
    assert "tools.clock" in policy.permissions_for(CallerIdentity.anonymous())


@pytest.mark.unit
@pytest.mark.parametrize(
    "text",
    [
        "rules: [echo]",
        "rules:\n  echo: ''",
        "unknown_section: {}",
        "rules: {echo: [",
        "- just\n- a list",
    ],
    ids=["rules-not-mapping", "blank-permission", "unknown-key", "bad-yaml", "not-a-mapping"],
)
def test_malformed_policy_is_rejected(tmp_path: Path, text: str):
    with pytest.raises(PolicyLoadError):
        load_policy(_write(tmp_path, text))


@pytest.mark.unit
def test_missing_policy_file_is_rejected(tmp_path: Path):
    with pytest.raises(PolicyLoadError):
        load_policy(tmp_path / "absent.yaml")


@pytest.mark.unit
def test_policy_tables_are_read_only():
    policy = StaticAuthPolicy(rules={"echo": "use:echo"})
    with pytest.raises(TypeError):
        policy.rules["echo"] = "other"  # type: ignore[index]


@pytest.mark.unit
def test_roles_inherit_grants_transitively():
    policy = StaticAuthPolicy(
        role_grants={"readonly": ["read"], "user": ["write"], "admin": ["manage"]},
        role_inherits={"Owner": ["admin"], "admin": ["user"], "user": ["readonly"], "readonly": ["user"]},
    )
    assert policy.permissions_for(CallerIdentity.of("o", roles=["owner"])) == frozenset(
        {"read", "write", "manage"}
    )
    assert policy.permissions_for(CallerIdentity.of("u", roles=["user"])) == frozenset({"read", "write"})
    assert policy.effective_roles(["admin"]) == frozenset({"admin", "user", "readonly"})


@pytest.mark.unit
def test_example_policy_admin_inherits_operator():
    policy = load_policy(EXAMPLE_POLICY)
    admin = policy.permissions_for(CallerIdentity.of("x", roles=["admin"]))
    assert admin == frozenset({"tools.basic", "tools.math", "tools.clock"})
