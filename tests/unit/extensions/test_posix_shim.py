from __future__ import annotations

import pytest

from config.settings import AppSettings
from extensions.bootstrap import BootstrapContext, ExtensionInitError, InitErrorKind
from extensions.posix_shim import (
    PosixShimConfig,
    PosixShimExtension,
    derive_seed,
    extension_configs_from_settings,
)


@pytest.mark.unit
def test_seed_derivation_is_deterministic():
    assert derive_seed("svc") == derive_seed("svc")
    assert derive_seed("svc") != derive_seed("svd")


@pytest.mark.unit
def test_seed_derivation_pattern():
    seed = derive_seed("ab")
    assert len(seed) == 32
    assert seed[0] == ord("a") and seed[1] == ord("b")
    # Later bytes are an earlier byte plus the index, wrapping at 256
    for i in range(2, 32):
        assert seed[i] == (seed[i % 2] + i) & 0xFF


@pytest.mark.unit
def test_long_ids_are_truncated_to_the_seed_length():
    seed = derive_seed("x" * 40)
    assert seed == b"x" * 32


@pytest.mark.unit
def test_explicit_seed_wins():
    explicit = bytes(range(32))
    shim = PosixShimExtension().apply(PosixShimConfig(seed=explicit), BootstrapContext(service_id="svc"))
    assert shim.seed == explicit


@pytest.mark.unit
@pytest.mark.parametrize("bad", [(10, 10), (20, 10), (-1, 5), (250, 256)])
def test_memory_range_is_validated(bad):
    with pytest.raises(ValueError):
        PosixShimConfig(memory_range=bad)


@pytest.mark.unit
def test_seed_must_be_32_bytes():
    with pytest.raises(ValueError):
        PosixShimConfig(seed=b"short")


@pytest.mark.unit
def test_configs_from_settings_keep_order_and_values():
    settings = AppSettings(
        extensions=["posix_shim"],
        posix_shim_env={"LANG": "C"},
        posix_shim_memory_range=(100, 110),
        posix_shim_required_env=["LANG"],
    )
    (cfg,) = extension_configs_from_settings(settings)
    assert isinstance(cfg, PosixShimConfig)
    assert cfg.env_vars == {"LANG": "C"}
    assert cfg.memory_range == (100, 110)
    assert cfg.required_env_vars == ("LANG",)


@pytest.mark.unit
def test_configs_from_settings_reject_unknown_and_invalid():
    with pytest.raises(ExtensionInitError) as unknown:
        extension_configs_from_settings(AppSettings(extensions=["gpu"]))
    assert unknown.value.kind is InitErrorKind.DEPENDENCY_MISSING

    with pytest.raises(ExtensionInitError) as invalid:
        extension_configs_from_settings(
            AppSettings(extensions=["posix_shim"], posix_shim_memory_range=(5, 1))
        )
    assert invalid.value.kind is InitErrorKind.INVALID_CONFIGURATION
