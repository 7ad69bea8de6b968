"""relock - regenerate lock files for a proposed manifest update.

    Returns:
        int: Exit code
"""

import asyncio
import json
import logging
import os
import sys

from args import parse_args
from artifacts.engine import update_artifacts
from artifacts.models import UpdateArtifact, UpdateArtifactsConfig, Upgrade
from common.cache import PrivateCache
from common.errors import TemporaryError
from common.exec import LocalExecutor
from common.fs import LocalFileStore
from common.logging_utils import configure_logging
from config import GlobalConfig, load_config
from constants import ExitCodes, PackageManagers
from registry.npm.artifacts import NpmToolchain, YarnToolchain
from registry.nuget.artifacts import NuGetToolchain

logger = logging.getLogger(__name__)

TOOLCHAINS = {
    PackageManagers.NUGET.value: NuGetToolchain,
    PackageManagers.NPM.value: NpmToolchain,
    PackageManagers.YARN.value: YarnToolchain,
}


def parse_dep(token):
    """Parse ``NAME`` or ``NAME=URL[,URL...]`` into an Upgrade."""
    name, sep, urls = token.partition("=")
    registry_urls = [u.strip() for u in urls.split(",") if u.strip()] if sep else []
    return Upgrade(dep_name=name.strip() or None, registry_urls=registry_urls)


def parse_key_values(tokens):
    """Parse ``KEY=VALUE`` tokens into a dict, ignoring malformed entries."""
    result = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep or not key.strip():
            logging.warning("Ignoring malformed KEY=VALUE argument: %s", token)
            continue
        result[key.strip()] = value.strip()
    return result


def _read_text(path):
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        logging.error("Unable to read %s: %s", path, e)
        sys.exit(ExitCodes.FILE_ERROR.value)


def setup_logging(args):
    """Configure logging based on CLI arguments."""
    configure_logging(args.LOG_LEVEL)
    if args.LOG_FILE:
        file_handler = logging.FileHandler(args.LOG_FILE)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s"
        ))
        logging.getLogger().addHandler(file_handler)


def build_request(args, global_config: GlobalConfig, files: LocalFileStore):
    """Assemble the UpdateArtifact for the CLI invocation."""
    if args.CONTENT_FILE:
        content = _read_text(args.CONTENT_FILE)
    else:
        content = asyncio.run(files.read_local_file(args.PACKAGE_FILE))
        if content is None:
            logging.error("Package file not found: %s", args.PACKAGE_FILE)
            sys.exit(ExitCodes.FILE_ERROR.value)

    constraints = dict(global_config.constraints)
    constraints.update(parse_key_values(args.CONSTRAINTS))
    config = UpdateArtifactsConfig(
        npmrc=_read_text(args.NPMRC_FILE) if args.NPMRC_FILE else None,
        npmrc_merge=args.NPMRC_MERGE,
        constraints=constraints,
        post_update_options=list(args.POST_UPDATE_OPTIONS),
        is_lock_file_maintenance=args.MAINTENANCE,
    )
    return UpdateArtifact(
        package_file_name=args.PACKAGE_FILE,
        new_package_file_content=content,
        updated_deps=[parse_dep(token) for token in args.DEPS],
        config=config,
    )


def run(args):
    """Run one artifact update and return the exit code."""
    try:
        global_config = load_config(args.CONFIG)
    except (OSError, ValueError) as e:
        logging.error("Unable to load configuration: %s", e)
        return ExitCodes.FILE_ERROR.value
    if args.LOCAL_DIR:
        global_config.local_dir = args.LOCAL_DIR

    files = LocalFileStore(global_config.local_dir)
    request = build_request(args, global_config, files)
    toolchain = TOOLCHAINS[args.MANAGER](files, global_config.expose_all_env)
    executor = LocalExecutor(
        global_config.local_dir,
        expose_all_env=global_config.expose_all_env,
        default_timeout=global_config.exec_timeout,
    )
    cache = PrivateCache(global_config.cache_dir, keep=global_config.keep_cache)

    try:
        results = asyncio.run(update_artifacts(
            request, toolchain, files=files, executor=executor, cache=cache,
        ))
    except TemporaryError as e:
        logging.error("Temporary failure, retry later: %s", e.reason or e)
        return ExitCodes.TEMPORARY_ERROR.value

    payload = [r.to_dict() for r in results] if results else None
    text = json.dumps(payload, indent=2)
    if args.OUTPUT:
        with open(args.OUTPUT, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    else:
        print(text)

    if results is None:
        logging.info("No lock file changes for %s", request.package_file_name)
    if results and any(r.artifact_error for r in results):
        return ExitCodes.ARTIFACT_ERROR.value
    return ExitCodes.SUCCESS.value


def main(argv=None):
    """Main function of the program."""
    args = parse_args(argv)
    setup_logging(args)
    logger.debug("relock %s %s", args.MANAGER, os.path.normpath(args.PACKAGE_FILE))
    sys.exit(run(args))


if __name__ == "__main__":
    main()
