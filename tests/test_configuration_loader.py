from pathlib import Path

from vaultsync.configuration import load_runtime_configuration


def _write_override(vault: Path, content: str) -> None:
    cfg_dir = vault / "config"
    cfg_dir.mkdir(parents=True, exist_ok=True)
    (cfg_dir / "local.yml").write_text(content)


def _vault(tmp_path: Path) -> Path:
    vault = tmp_path / "vault"
    vault.mkdir()
    return vault


def test_invalid_types_raise_diagnostics(tmp_path: Path):
    vault = _vault(tmp_path)
    _write_override(
        vault,
        """
        sync:
          sync_on_startup: "yes"
        """,
    )

    bundle = load_runtime_configuration(vault)

    assert bundle.status == "invalid"
    assert any("sync_on_startup" in diag.message for diag in bundle.diagnostics)


def test_unknown_keys_warn(tmp_path: Path):
    vault = _vault(tmp_path)
    _write_override(
        vault,
        """
        mystery:
          value: 1
        """,
    )

    bundle = load_runtime_configuration(vault)

    assert any("Unknown configuration key" in diag.message for diag in bundle.diagnostics)


def test_unknown_backend_is_an_error(tmp_path: Path):
    vault = _vault(tmp_path)
    _write_override(
        vault,
        """
        sync:
          backend: carrier-pigeon
        """,
    )

    bundle = load_runtime_configuration(vault)

    assert bundle.status == "invalid"
    assert any("carrier-pigeon" in diag.message for diag in bundle.diagnostics)


def test_non_positive_interval_is_an_error(tmp_path: Path):
    vault = _vault(tmp_path)
    _write_override(
        vault,
        """
        sync:
          interval_minutes: 0
        """,
    )

    bundle = load_runtime_configuration(vault)

    assert bundle.status == "invalid"
    assert any("interval_minutes" in diag.message for diag in bundle.diagnostics)


def test_missing_credentials_only_warn(tmp_path: Path):
    vault = _vault(tmp_path)
    _write_override(
        vault,
        """
        sync:
          account_name: acct
        """,
    )

    bundle = load_runtime_configuration(vault)

    warnings = [d.message for d in bundle.diagnostics if d.level == "warning"]
    assert any("sync.credential" in msg and "sync.container_name" in msg for msg in warnings)
    assert not any("sync.account_name" in msg for msg in warnings)
    assert bundle.status == "ready"


def test_base_directory_is_canonicalized(tmp_path: Path):
    vault = _vault(tmp_path)
    _write_override(
        vault,
        """
        sync:
          base_directory: "//notes//daily"
        """,
    )

    bundle = load_runtime_configuration(vault)

    assert bundle.merged["sync"]["base_directory"] == "notes/daily/"
