"""
Source locators.

A locator is either a local relative path (``./dir/Droverfile``) or a remote
``repository:path`` reference. Remote repositories are shallow-cloned once
into ``.drover/repo/<sha256 of repository>`` and reused afterwards.
"""

import hashlib
import logging
import os
import subprocess
from pathlib import Path
from typing import Tuple

from drover.exceptions import ConfigValidationError, SourceError
from drover.loader import ConfigLoader, validate_document
from drover.model import ConfigDocument


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "Droverfile"
LOCAL_STORAGE = ".drover"
REPO_STORAGE = os.path.join(LOCAL_STORAGE, "repo")


def is_local(source: str) -> bool:
    """Local locators start with a path-relative marker."""
    return len(source) >= 2 and source[0] == '.' and source[1] in ('/', os.sep)


def _sibling(parent_path: str, child: str) -> str:
    parent_dir = parent_path.split('/')[:-1]
    return '/'.join(parent_dir + [child[2:]])


def merge_sources(parent: str, child: str) -> str:
    """
    Combine a parent locator with a child locator found inside it.

    An empty child means the parent document itself. A local child is
    anchored in the parent's directory, keeping the parent's repository when
    the parent is remote. Any other child is already fully qualified.
    """
    if not child:
        return parent
    if not parent:
        return child
    if not is_local(child):
        return child

    if not is_local(parent) and ':' in parent:
        repository, path = parent.rsplit(':', 1)
        return f"{repository}:{_sibling(path, child)}"
    return _sibling(parent, child)


def relative_source(root: str, source: str) -> str:
    """
    Express ``source`` so that merging it into ``root`` yields it again.

    Local sources become relative to the root document's directory; an
    empty result means the root document itself. Remote sources, or any
    source under a remote root, stay fully qualified.
    """
    if not is_local(root) or not is_local(source):
        return source
    source_path = os.path.normpath(source)
    if source_path == os.path.normpath(root):
        return ""
    root_dir = os.path.dirname(os.path.normpath(root)) or "."
    return "./" + os.path.relpath(source_path, root_dir).replace(os.sep, "/")


def repository_path(repository: str) -> str:
    digest = hashlib.sha256(repository.encode('utf-8')).hexdigest()
    return os.path.join(REPO_STORAGE, digest)


def _checkout(repository: str) -> str:
    """Shallow-clone a repository unless a checkout already exists."""
    checkout = repository_path(repository)
    if os.path.exists(checkout):
        return checkout

    os.makedirs(REPO_STORAGE, exist_ok=True)
    logger.info(f"Cloning {repository}")
    try:
        subprocess.run(
            ['git', 'clone', '--depth', '1', repository, checkout],
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise SourceError(f"could not clone {repository}: {e}") from e
    return checkout


def resolve_path(source: str) -> str:
    """Map a locator to a filesystem path, fetching remote repositories."""
    if is_local(source):
        return source
    if ':' not in source:
        raise SourceError(
            f"invalid source {source}: expected a local path starting with ./ or repository:path"
        )
    repository, path = source.rsplit(':', 1)
    if not repository:
        raise SourceError(f"invalid source {source}: empty repository")
    return os.path.join(_checkout(repository), path)


def resolve_config_path(source: str) -> Tuple[str, str]:
    """
    Resolve a locator to the config file it designates.

    Returns the fully qualified locator (with the default file name appended
    for directories) and the filesystem path.
    """
    path = resolve_path(source)
    if not os.path.exists(path):
        raise SourceError(f"could not find {source}")
    if os.path.isdir(path):
        full_source = source if source.endswith('/') else source + '/'
        return resolve_config_path(full_source + DEFAULT_CONFIG_NAME)
    return source, path


def read_source(source: str) -> bytes:
    path = resolve_path(source)
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise SourceError(f"could not read {source}: {e}") from e


def read_config(source: str) -> Tuple[str, ConfigDocument]:
    """Read and parse the config document behind a locator."""
    full_source, path = resolve_config_path(source)
    try:
        content = Path(path).read_bytes()
    except OSError as e:
        raise SourceError(f"could not read {full_source}: {e}") from e

    try:
        document = ConfigLoader().parse(content)
    except ConfigValidationError as e:
        for error in e.errors:
            error.path = error.path or full_source
        raise ConfigValidationError(e.errors) from None
    return full_source, document


def write_config(document: ConfigDocument, source: str) -> None:
    """
    Persist a document at a local locator.

    The document is validated and round-tripped through the loader before
    anything touches the disk, then written to a temporary sibling and
    renamed over the target.
    """
    if not is_local(source):
        raise SourceError(f"cannot write to {source}: only local sources can be edited")

    validate_document(document)
    loader = ConfigLoader()
    content = loader.dump(document)
    loader.parse(content)

    target = Path(source)
    if target.is_dir():
        target = target / DEFAULT_CONFIG_NAME
    target.parent.mkdir(parents=True, exist_ok=True)

    temp_file = target.with_name(target.name + '.tmp')
    try:
        with open(temp_file, 'w') as f:
            f.write(content)
        temp_file.replace(target)
    except OSError as e:
        raise SourceError(f"could not write {source}: {e}") from e
    logger.debug(f"Wrote config to {target}")
