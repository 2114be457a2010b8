"""Pytest configuration and fixtures for zoneprobe tests.

CRITICAL: Tests must never create real cloud resources or read the
operator's ~/.zoneprobe/config.toml.
"""

import os

import pytest


@pytest.fixture(scope="session", autouse=True)
def prevent_real_cloud_operations():
    """Mark test mode for the whole session.

    Tests that need a real cloud should explicitly check for RUN_E2E_TESTS=true.
    """
    os.environ["ZONEPROBE_TEST_MODE"] = "true"

    if os.environ.get("RUN_E2E_TESTS") == "true":
        print("\n" + "=" * 70)
        print("WARNING: RUN_E2E_TESTS=true - E2E tests will use REAL cloud resources!")
        print("=" * 70 + "\n")

    yield

    if "ZONEPROBE_TEST_MODE" in os.environ:
        del os.environ["ZONEPROBE_TEST_MODE"]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point configuration and results at tmp_path.

    Keeps ~/.zoneprobe/config.toml and ZONEPROBE_* variables from the
    developer's shell out of every test.
    """
    config_dir = tmp_path / ".zoneprobe"
    config_dir.mkdir(parents=True)
    monkeypatch.setenv("ZONEPROBE_CONFIG", str(config_dir / "config.toml"))
    monkeypatch.setenv("ZONEPROBE_RESULTS_DIR", str(tmp_path / "results"))
    monkeypatch.delenv("ZONEPROBE_INSTANCE_TIMEOUT", raising=False)
    return config_dir
