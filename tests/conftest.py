"""Pytest configuration and fixtures for runner tests."""

import stat
import tempfile
import time
from pathlib import Path

import pytest

# Stand-in for ck-client: echoes its arguments to stdout (the log file) and
# appends start/stop lines to events.txt next to its payload file.
FAKE_CK_CLIENT = """#!/bin/sh
root=$(dirname "$2")
listen=$8
trap 'echo "stop $listen $$" >> "$root/events.txt"; exit 0' TERM
echo "ck-client $*"
echo "start $listen $$" >> "$root/events.txt"
while :; do sleep 0.05; done
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_config_yaml():
    """Sample client config as YAML string."""
    return """
clients:
  tokyo:
    server: a.example.com
    port: 443
    listen: 1080
    config: '{"UID": "tokyo-uid", "ServerName": "www.bing.com"}'
  frankfurt:
    server: b.example.com
    port: 8443
    listen: 1081
    config: frankfurt-payload
"""


@pytest.fixture
def config_file(temp_dir, sample_config_yaml):
    """Create config.yml in a temporary config root."""
    config_path = temp_dir / "config.yml"
    config_path.write_text(sample_config_yaml)
    return config_path


@pytest.fixture
def fake_binary(temp_dir):
    """An executable that behaves enough like ck-client for lifecycle tests."""
    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()
    path = bin_dir / "ck-client"
    path.write_text(FAKE_CK_CLIENT)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


def wait_for(predicate, timeout: float = 10.0, interval: float = 0.05) -> bool:
    """Poll until predicate() is truthy or the timeout expires."""
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return bool(predicate())


def read_events(config_root: Path) -> list[str]:
    """Lines the fake ck-client appended to events.txt."""
    path = config_root / "events.txt"
    if not path.exists():
        return []
    return path.read_text().splitlines()
