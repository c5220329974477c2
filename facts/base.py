import shlex

from pyinfra.api import FactBase


class AuthorizedKeys(FactBase):

    @staticmethod
    def default():
        return []

    def command(self, path):
        path = shlex.quote(path)
        return f'cat {path} 2>/dev/null || true'

    def process(self, output):
        return [line.strip() for line in output if line.strip()]


class MatchingLines(FactBase):

    @staticmethod
    def default():
        return []

    def command(self, path, pattern):
        return f'grep -E {shlex.quote(pattern)} {shlex.quote(path)} 2>/dev/null || true'

    def process(self, output):
        return [line.rstrip('\n') for line in output]


class CommandSucceeds(FactBase):

    @staticmethod
    def default():
        return False

    def command(self, command):
        return f'{{ {command}; }} >/dev/null 2>&1 && echo yes || echo no'

    def process(self, output):
        return bool(output) and output[-1] == 'yes'


class CommandOutput(FactBase):

    @staticmethod
    def default():
        return ''

    def command(self, command):
        return f'{command} 2>/dev/null || true'

    def process(self, output):
        return '\n'.join(output).strip()
