from dataclasses import dataclass
import functools
import os
import shlex

from pyinfra import logger

import tasks.config
import tasks.ops

SUPPORTED_KEY_TYPES = {'rsa', 'ecdsa', 'ed25519'}


class CredentialError(Exception):
    pass


@dataclass(frozen=True)
class PublicKey:
    path: str
    content: str

    @property
    def fields(self):
        return self.content.split()

    @property
    def key_type(self):
        return self.fields[0]

    @property
    def blob(self):
        return self.fields[1]

    def matches(self, line: str) -> bool:
        fields = line.split()
        # options may precede the key type in authorized_keys
        for i, f in enumerate(fields[:-1]):
            if f == self.key_type and fields[i + 1] == self.blob:
                return True

        return False


def read_public_key(path: str) -> PublicKey:
    with open(path) as f:
        content = f.read().strip()

    if len(content.split()) < 2 or '\n' in content:
        raise CredentialError(f'Malformed public key in {path}')

    return PublicKey(path=path, content=content)


def check_parent(path: str):
    parent = os.path.dirname(path) or '.'
    if not os.path.isdir(parent):
        raise CredentialError(f'Directory {parent} for key {path} does not exist')
    if not os.access(parent, os.W_OK):
        raise CredentialError(f'Directory {parent} for key {path} is not writable')


def get_keygen_command(key_pair: tasks.config.KeyPair) -> str:
    if key_pair.type not in SUPPORTED_KEY_TYPES:
        raise CredentialError(f'Unsupported key type {key_pair.type}')

    size = f' -b {key_pair.size}' if key_pair.type != 'ed25519' else ''
    return f"ssh-keygen -q -t {key_pair.type}{size} -N '' -f {shlex.quote(key_pair.path)}"


def generate(key_pair: tasks.config.KeyPair):
    check_parent(key_pair.path)

    try:
        tasks.ops.run_command(get_keygen_command(key_pair))
    except tasks.ops.CommandError as e:
        raise CredentialError(f'Unable to generate key pair at {key_pair.path}') from e

    default_public_path = f'{key_pair.path}.pub'
    if key_pair.public_path != default_public_path:
        os.rename(default_public_path, key_pair.public_path)


@functools.lru_cache(maxsize=None)
def do_ensure_key_pair(path: str, public_path: str, key_type: str, size: int) -> PublicKey:
    key_pair = tasks.config.KeyPair(path=path, public_path=public_path, type=key_type, size=size)

    if os.path.exists(key_pair.path) and os.path.exists(key_pair.public_path):
        logger.info(f'Key pair {key_pair.path} exists, reusing it')
    elif os.path.exists(key_pair.path):
        raise CredentialError(f'Private key {key_pair.path} exists without public key {key_pair.public_path}')
    else:
        logger.info(f'Generating {key_pair.type} key pair at {key_pair.path}')
        generate(key_pair)

    return read_public_key(key_pair.public_path)


def ensure_key_pair(key_pair: tasks.config.KeyPair) -> PublicKey:
    return do_ensure_key_pair(key_pair.path, key_pair.public_path, key_pair.type, key_pair.size)


def run(config: tasks.config.Config) -> PublicKey:
    return ensure_key_pair(config.key_pair)
