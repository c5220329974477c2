from dataclasses import dataclass
import shlex
from typing import Callable, Dict, Union

import facts.base
import tasks.context


@dataclass
class UnlessFile:
    ls: str

    def should_proceed(self, get_fact: Callable, context: Dict = None):
        ls_target = tasks.context.expand(self.ls, context)
        return not get_fact(facts.base.CommandSucceeds, command=f'test -e {shlex.quote(ls_target)}')


@dataclass
class UnlessDir:
    dir: str

    def should_proceed(self, get_fact: Callable, context: Dict = None):
        target = tasks.context.expand(self.dir, context)
        return not get_fact(facts.base.CommandSucceeds, command=f'test -d {shlex.quote(target)}')


def contains(output, needle):
    for line in output.split('\n'):
        if needle in line:
            return True

    return False


def split(s, index):
    split = s.split()
    index = int(index)
    if len(split) < index + 1:
        raise Exception(f"Invalid split for string {s} and index {index}")
    return split[index]


@dataclass
class UnlessCmd:
    cmd: str
    post: str = None

    POST_FNS = {
        'cut': lambda x, p: x[int(p):],
        'head': lambda x, p: x.split('\n')[int(p)],
        'split': split,
        'contains': contains,
    }

    def get_fn(self, operation: str, parameter: str):
        if operation not in self.POST_FNS:
            raise Exception(f'Unknown operation {operation}')

        return lambda x: self.POST_FNS[operation](x, parameter)

    def get_version(self, output, version_fn):
        ops = []

        for op in version_fn.split('|'):
            operation, parameter = op.strip().split()
            ops.append(self.get_fn(operation, parameter))

        for op in ops:
            output = op(output)

        return output

    def should_proceed(self, get_fact: Callable, context: Dict = None):
        context = context or {}
        cmd = tasks.context.expand(self.cmd, context)

        if not get_fact(facts.base.CommandSucceeds, command=cmd):
            return True

        if not self.post:
            return False

        output = get_fact(facts.base.CommandOutput, command=cmd)
        current_version = self.get_version(output, self.post)
        # `contains` yields a bool, everything else a version string
        if isinstance(current_version, bool):
            return not current_version

        return current_version != context.get('version', '')


UNLESS_TYPES = [UnlessCmd, UnlessDir, UnlessFile]

Unless = Union[UnlessCmd, UnlessDir, UnlessFile]


def do_get_unless(unless, cls):
    try:
        return cls(**unless)
    except TypeError:
        return


def get_unless(unless: Dict) -> Union[None, Unless]:
    if not unless:
        return

    for unless_type in UNLESS_TYPES:
        if found_unless := do_get_unless(unless, unless_type):
            return found_unless

    raise Exception(f'Cannot determine unless type for {unless}')
