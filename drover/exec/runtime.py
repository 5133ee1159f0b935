"""
Runtime builder.

Turns a shell command plus a runtime declaration into the command line that
is handed to bash: the command itself for native runtimes, a fully
assembled ``docker run`` invocation for container runtimes.
"""

import logging
import os
from pathlib import Path
from typing import List, Mapping

from drover.exceptions import NotFoundError, RuntimeConfigError
from drover.model import Runtime, RUNTIME_CONTAINER, RUNTIME_NATIVE
from drover.sources import LOCAL_STORAGE
from drover.variables.template import render


logger = logging.getLogger(__name__)

CACHE_DIR = "cache"
DEFAULT_RUNTIME = Runtime(name="", type=RUNTIME_NATIVE)


def get_runtime(runtimes: List[Runtime], name: str) -> Runtime:
    """Look up a runtime by name; the empty name is the host itself."""
    if not name:
        return DEFAULT_RUNTIME
    for runtime in runtimes:
        if runtime.name == name:
            return runtime
    raise NotFoundError(f"runtime {name} is not defined")


def get_command(runtime: Runtime, env: Mapping[str, str], interactive: bool, command: str) -> str:
    """Build the rendered command line for running ``command`` in ``runtime``."""
    if runtime.type == RUNTIME_NATIVE:
        assembled = command
    elif runtime.type == RUNTIME_CONTAINER:
        assembled = _container_command(runtime, env, interactive, command)
    else:
        raise RuntimeConfigError(f"unknown runtime type {runtime.type}")
    return render(assembled, env)


def _check_cache_path(path: str) -> None:
    if not path.startswith("/"):
        raise RuntimeConfigError(f"invalid cache path ({path}): path should start with /")


def _current_dir() -> str:
    try:
        return os.getcwd()
    except OSError as e:
        raise RuntimeConfigError(f"could not determine the working directory: {e}") from e


def global_cache_dir(runtime: Runtime) -> str:
    """Per-runtime cache directory in the user's home, created when missing."""
    try:
        home = Path.home()
    except RuntimeError as e:
        raise RuntimeConfigError(f"could not determine the home directory: {e}") from e

    cache_dir = home / LOCAL_STORAGE / CACHE_DIR / runtime.name
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RuntimeConfigError(f"could not create {cache_dir}: {e}") from e
    return str(cache_dir)


def _container_command(runtime: Runtime, env: Mapping[str, str], interactive: bool, command: str) -> str:
    home = runtime.get_home()
    current_dir = _current_dir()

    env_flags = []
    for name, value in runtime.env.items():
        rendered = render(value, env)
        if rendered:
            env_flags.append(f"-e {name}={rendered}")
    env_flags.sort()

    volumes = []
    for path in runtime.cache:
        _check_cache_path(path)
        volumes.append(f"-v {current_dir}/{LOCAL_STORAGE}/{CACHE_DIR}{path}:{path}")
    if runtime.global_cache:
        cache_dir = global_cache_dir(runtime)
        for path in runtime.global_cache:
            _check_cache_path(path)
            volumes.append(f"-v {cache_dir}{path}:{path}")
    volumes.append(f"-v {current_dir}:{home}")

    ports = []
    for port_spec in runtime.ports:
        for port in render(port_spec, env).split(","):
            port = port.strip()
            if not port:
                continue
            if ":" in port:
                ports.append(f"-p {port}")
            else:
                ports.append(f"-p {port}:{port}")

    parts = ["docker run --rm"] + env_flags + volumes + ports + [f"-w {home}"]
    if interactive:
        parts.append("-it")
    parts += [runtime.image, command]

    assembled = " ".join(parts)
    logger.debug(f"Container command for runtime {runtime.name}: {assembled}")
    return assembled
