import enum
import os
import shlex
import subprocess
from typing import List


class CommandError(Exception):

    def __init__(self, cmd, returncode, stdout='', stderr=''):
        self.cmd = cmd
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr

        output = {}
        if stdout:
            output['stdout'] = stdout
        if stderr:
            output['stderr'] = stderr
        msg = '\n'.join([f'{k}: {v}' for k, v in output.items()])

        super().__init__(f'Error running command {cmd}\n{msg}'.strip())


class Mode(enum.Enum):
    REQUIRED = 'required'
    BEST_EFFORT = 'best-effort'


def with_mode(cmd: str, mode: Mode = Mode.REQUIRED) -> str:
    if mode is Mode.BEST_EFFORT:
        return f'( {cmd} ) || true'

    return cmd


def as_user(user: str, script: str) -> str:
    return f'sudo -H -u {user} bash -lc {shlex.quote(script)}'


def join_script(cmds: List[str]) -> str:
    return ' && '.join(cmds)


def run_command(cmd, pwd=None, raise_on_error=True):
    if pwd:
        pwd = os.path.expanduser(pwd)

    proc = subprocess.run(cmd, shell=True, text=True, capture_output=True, cwd=pwd)

    if proc.returncode == 0 or not raise_on_error:
        return proc.stdout.strip()

    raise CommandError(cmd, proc.returncode, proc.stdout.strip(), proc.stderr.strip())
