import dataclasses
import os
import re
from typing import Dict

VAR_REGEX = re.compile(r'\$\{([^}]*)\}')


def get_context(obj) -> Dict[str, str]:
    return {k: v for k, v in dataclasses.asdict(obj).items() if type(v) in [int, float, str]}


def expand(s: str, context: Dict[str, str] = None):
    context = context or {}

    home = os.getenv('HOME')
    if s.startswith('~/'):
        s = s.replace('~/', f'{home}/', 1)

    varmap = {}

    for lookup in VAR_REGEX.findall(s):
        if not lookup or lookup in varmap:
            continue

        if lookup in context:
            varmap[lookup] = context[lookup]
        elif value := os.getenv(lookup):
            varmap[lookup] = value
        else:
            raise Exception(f'Cannot determine value of variable `{lookup}`')

    for var, val in varmap.items():
        s = s.replace(f'${{{var}}}', str(val))

    return s
