"""Constants used in the project."""

import os
from enum import Enum


class ExitCodes(Enum):
    """Exit codes for the program.

    Args:
        Enum (int): Exit codes for the program.
    """

    SUCCESS = 0
    FILE_ERROR = 1
    TEMPORARY_ERROR = 2
    ARTIFACT_ERROR = 3


class PackageManagers(Enum):
    """Package managers supported by the program.

    Args:
        Enum (string): Package managers supported by the program.
    """

    NUGET = "nuget"
    NPM = "npm"
    YARN = "yarn"


class Constants:  # pylint: disable=too-few-public-methods
    """General constants used in the project.
    Data holder for configuration constants; not intended to provide behavior.
    """

    SUPPORTED_MANAGERS = [
        PackageManagers.NUGET.value,
        PackageManagers.NPM.value,
        PackageManagers.YARN.value,
    ]
    LOG_FORMAT = "[%(levelname)s] %(message)s"
    ENV_LOG_LEVEL = "RELOCK_LOG_LEVEL"

    # Failure marker meaning "retry at a higher layer"
    TEMPORARY_ERROR = "temporary-error"

    # npm / yarn
    PACKAGE_JSON_FILE = "package.json"
    PACKAGE_LOCK_FILE = "package-lock.json"
    YARN_LOCK_FILE = "yarn.lock"
    NPMRC_FILE = ".npmrc"
    YARNRC_FILE = ".yarnrc.yml"
    NVMRC_FILE = ".nvmrc"
    NPMRC_LOCKFILE_SETTING = "package-lock"
    NPMRC_ENV_MARKER = "=${"

    # NuGet
    NUGET_CENTRAL_FILE = "Directory.Packages.props"
    MSBUILD_CENTRAL_FILE = "Packages.props"
    GLOBAL_JSON_FILE = "global.json"
    NUGET_CONFIG_FILE = "nuget.config"
    NUGET_CONFIG_FILE_NAMES = ["nuget.config", "NuGet.config", "NuGet.Config"]
    NUGET_LOCK_FILE = "packages.lock.json"
    NUGET_DEFAULT_REGISTRY_NAME = "nuget.org"
    NUGET_DEFAULT_REGISTRY_URL = "https://api.nuget.org/v3/index.json"
    NUGET_WORKLOAD_RESTORE_OPTION = "dotnetWorkloadRestore"

    # Configuration
    CONFIG_FILE_NAMES = ["relock.yml", "relock.yaml"]
    ENV_EXPOSE_ALL_ENV = "RELOCK_EXPOSE_ALL_ENV"
    ENV_CACHE_DIR = "RELOCK_CACHE_DIR"
    ENV_LOCAL_DIR = "RELOCK_LOCAL_DIR"
    DEFAULT_CACHE_DIR = os.path.join(
        os.environ.get("XDG_CACHE_HOME", os.path.expanduser("~/.cache")), "relock"
    )
    EXEC_TIMEOUT_SEC = 15 * 60

    # Ambient variables passed to isolated toolchain processes
    BASIC_ENV_VARS = [
        "PATH",
        "HOME",
        "LANG",
        "LC_ALL",
        "TZ",
        "TMPDIR",
        "DOTNET_ROOT",
        "HTTP_PROXY",
        "HTTPS_PROXY",
        "NO_PROXY",
        "http_proxy",
        "https_proxy",
        "no_proxy",
    ]
