"""Locating and installing the ck-client binary."""

import os
import platform
import shutil
from pathlib import Path

import requests
import structlog

from .exceptions import BootstrapError

logger = structlog.get_logger()

BINARY_NAME = "ck-client"
SYSTEM_PATH = Path("/usr/bin/ck-client")
CLOAK_VERSION = "v2.9.0"

RELEASE_URLS = {
    "amd64": (
        "https://github.com/cbeuw/Cloak/releases/download/"
        f"{CLOAK_VERSION}/ck-client-linux-amd64-{CLOAK_VERSION}"
    ),
    "arm64": (
        "https://github.com/cbeuw/Cloak/releases/download/"
        f"{CLOAK_VERSION}/ck-client-linux-arm64-{CLOAK_VERSION}"
    ),
}

# platform.machine() spellings for each release architecture
_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


def find_binary(system_path: Path = SYSTEM_PATH) -> Path | None:
    """Look for ck-client on PATH, then at the well-known install path."""
    found = shutil.which(BINARY_NAME)
    if found:
        return Path(found)
    if system_path.exists():
        return system_path
    return None


def release_arch(machine: str | None = None) -> str:
    """Map the CPU architecture to a Cloak release architecture.

    Raises:
        BootstrapError: If there is no release for this architecture.
    """
    machine = machine if machine is not None else platform.machine()
    arch = _ARCH_ALIASES.get(machine.lower())
    if arch is None:
        raise BootstrapError(f"Unsupported architecture: {machine}")
    return arch


def download_file(url: str, dest_path: Path, timeout: float = 30.0) -> None:
    """Stream a URL to a file, removing the file if anything goes wrong."""
    logger.info("downloading", url=url, dest=str(dest_path))
    try:
        with requests.get(url, stream=True, timeout=timeout) as r:
            r.raise_for_status()
            with open(dest_path, "wb") as f:
                for chunk in r.iter_content(chunk_size=8192):
                    f.write(chunk)
    except (requests.RequestException, OSError) as e:
        dest_path.unlink(missing_ok=True)
        raise BootstrapError(f"Failed to download {url}: {e}") from e


def install_binary(install_path: Path = SYSTEM_PATH, machine: str | None = None) -> Path:
    """Download the ck-client release for this machine and mark it executable.

    Raises:
        BootstrapError: On unsupported architecture or download failure.
    """
    arch = release_arch(machine)
    logger.info("installing_ck_client", arch=arch, path=str(install_path))

    download_file(RELEASE_URLS[arch], install_path)
    try:
        os.chmod(install_path, 0o755)
    except OSError as e:
        raise BootstrapError(f"Cannot mark {install_path} executable: {e}") from e

    logger.info("ck_client_installed", path=str(install_path))
    return install_path


def ensure_binary_present(
    install_path: Path = SYSTEM_PATH,
    machine: str | None = None,
) -> Path:
    """Return the ck-client path, installing it first if it is missing.

    Args:
        install_path: Well-known location checked and installed to.
        machine: CPU architecture override (defaults to platform.machine()).

    Raises:
        BootstrapError: If the binary is missing and cannot be installed.
    """
    found = find_binary(install_path)
    if found is not None:
        logger.debug("ck_client_found", path=str(found))
        return found
    return install_binary(install_path, machine)
