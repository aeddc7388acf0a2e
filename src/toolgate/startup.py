from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from config.settings import AppSettings
from extensions.bootstrap import (
    BootstrapResult,
    Extension,
    ExtensionConfig,
    bootstrap_extensions,
)
from extensions.posix_shim import extension_configs_from_settings
from security.audit import AuditSink, database_audit_sink
from security.gate import AuthorizationGate
from security.policy import AuthPolicy, StaticAuthPolicy, load_policy
from tools.decorators import ToolDeclaration, load_declarations
from tools.dispatcher import ToolDispatcher
from tools.registry import ToolRegistry, build_registry

_LOGGER = logging.getLogger("toolgate")


@dataclass(frozen=True)
class ToolService:
    """Everything the transport needs, assembled once at startup."""

    registry: ToolRegistry
    gate: AuthorizationGate
    dispatcher: ToolDispatcher
    extensions: BootstrapResult


def build_service(
    declarations: Iterable[ToolDeclaration],
    extensions: Sequence[ExtensionConfig],
    policy: AuthPolicy,
    *,
    settings: AppSettings | None = None,
    audit_sink: AuditSink | None = None,
    extension_table: Mapping[str, Extension] | None = None,
) -> ToolService:
    """
    Startup sequence:

      1) build pass: validate and register every declaration
      2) apply extensions in order (first failure aborts startup)
      3) build the gate over the registry's name set
      4) freeze the registry

    Any error propagates; the service is never returned half-built.
    """
    registry = build_registry(declarations, freeze=False)
    service_id = settings.service_id if settings is not None else "toolgate"
    ready = bootstrap_extensions(extensions, extensions=extension_table, service_id=service_id)
    gate = AuthorizationGate(policy, registry.names(), audit_sink=audit_sink)
    registry.freeze()
    dispatcher = ToolDispatcher(
        registry,
        gate,
        tracing_enabled=bool(settings is not None and settings.enable_tracing),
    )
    _LOGGER.info(
        "service.ready: tools=%d extensions=%s", len(registry), ",".join(ready.applied) or "-"
    )
    return ToolService(registry=registry, gate=gate, dispatcher=dispatcher, extensions=ready)


def policy_from_settings(settings: AppSettings) -> AuthPolicy:
    """The configured policy file, or an empty policy (everything denied) when unset."""
    if settings.policy_path is None:
        _LOGGER.warning("policy.unset: no APP_POLICY_PATH; every tool call will be denied")
        return StaticAuthPolicy()
    return load_policy(settings.policy_path)


def build_service_from_settings(settings: AppSettings) -> ToolService:
    declarations = load_declarations(settings.tool_modules)
    return build_service(
        declarations,
        extension_configs_from_settings(settings),
        policy_from_settings(settings),
        settings=settings,
        audit_sink=database_audit_sink if settings.audit_log_enabled else None,
    )


__all__ = ["ToolService", "build_service", "build_service_from_settings", "policy_from_settings"]
