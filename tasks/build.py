import dataclasses
import functools
import os
import shlex
from typing import List

from pyinfra import host, logger
from pyinfra.api import StringCommand, operation

import tasks.config
import tasks.context
import tasks.unless


def get_context(library: tasks.config.Library):
    return tasks.context.get_context(library)


def expand_library(library: tasks.config.Library) -> tasks.config.Library:
    context = get_context(library)
    return dataclasses.replace(
        library,
        url=tasks.context.expand(library.url, context),
        configure=tasks.context.expand(library.configure, context),
    )


def get_archive_file(library: tasks.config.Library) -> str:
    return os.path.join(library.src_dir, os.path.basename(library.url))


def get_source_dir(library: tasks.config.Library) -> str:
    return os.path.join(library.src_dir, f'{library.name}-{library.version}')


def get_build_commands(library: tasks.config.Library) -> List[str]:
    library = expand_library(library)

    src_dir = shlex.quote(library.src_dir)
    archive_file = shlex.quote(get_archive_file(library))
    source_dir = shlex.quote(get_source_dir(library))

    return [
        f'mkdir -p {src_dir}',
        f'curl -fsSL -o {archive_file} {shlex.quote(library.url)}',
        f'tar -xzf {archive_file} -C {src_dir}',
        f'cd {source_dir} && {library.configure}',
        f'cd {source_dir} && make -j"$(nproc)"',
        f'cd {source_dir} && make install',
    ]


def should_build(library: tasks.config.Library, get_fact) -> bool:
    unless = tasks.unless.get_unless(library.unless)
    if not unless:
        return True

    return unless.should_proceed(get_fact, get_context(library))


@operation()
def build_library(library: tasks.config.Library):
    get_fact = functools.partial(host.get_fact, _sudo=True)

    if not should_build(library, get_fact):
        logger.info(f'{library.name} {library.version} is already installed in {library.prefix} on {host.name}')
        return

    for cmd in get_build_commands(library):
        yield StringCommand(cmd)


def run(config: tasks.config.Config):
    build_library(config.runtime.library, _sudo=True)
