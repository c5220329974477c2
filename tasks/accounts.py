import io
import shlex
from typing import Dict, List, Union

from pyinfra import host, logger
from pyinfra.api import StringCommand, operation
from pyinfra.facts.server import Users
from pyinfra.operations import files

import facts.base
import tasks.config
from tasks.credentials import PublicKey

SUDOERS_DIR = '/etc/sudoers.d'
SUDOERS_MODE = '440'


def get_home(account: tasks.config.Account, existing: Union[None, Dict]) -> str:
    if existing and existing.get('home'):
        return existing['home']

    return account.home


def get_missing_groups(account: tasks.config.Account, existing: Dict) -> List[str]:
    current = set(existing.get('groups') or [])
    if primary := existing.get('group'):
        current.add(primary)

    return [g for g in account.groups if g not in current]


def get_account_commands(account: tasks.config.Account, existing: Union[None, Dict]) -> List[str]:
    name = shlex.quote(account.name)

    if existing is None:
        maybe_groups = f' -G {",".join(account.groups)}' if account.groups else ''
        return [f'useradd -m -d {shlex.quote(account.home)} -s {shlex.quote(account.shell)}{maybe_groups} {name}']

    missing_groups = get_missing_groups(account, existing)
    if not missing_groups:
        return []

    return [f'usermod -a -G {",".join(missing_groups)} {name}']


def get_authorized_keys_file(home: str) -> str:
    return f'{home}/.ssh/authorized_keys'


def is_key_present(lines: List[str], public_key: PublicKey) -> bool:
    for line in lines:
        if line.startswith('#'):
            continue
        if public_key.matches(line):
            return True

    return False


def get_authorized_key_commands(account: tasks.config.Account, home: str, public_key: PublicKey) -> List[str]:
    name = shlex.quote(account.name)
    ssh_dir = shlex.quote(f'{home}/.ssh')
    keys_file = shlex.quote(get_authorized_keys_file(home))

    return [
        f'mkdir -p {ssh_dir}',
        f'touch {keys_file}',
        # terminate a last line written without a newline before appending
        f"sed -i -e '$a\\' {keys_file}",
        f'printf "%s\\n" {shlex.quote(public_key.content)} >> {keys_file}',
        f'chown {name}: {ssh_dir} {keys_file}',
        f'chmod 700 {ssh_dir}',
        f'chmod 600 {keys_file}',
    ]


def get_sudoers_content(account: tasks.config.Account) -> str:
    return f'{account.name} ALL=(ALL) NOPASSWD:ALL\n'


def get_sudoers_file(account: tasks.config.Account) -> str:
    return f'{SUDOERS_DIR}/{account.name}'


@operation()
def ensure_account(account: tasks.config.Account):
    existing = host.get_fact(Users).get(account.name)

    cmds = get_account_commands(account, existing)
    if not cmds:
        logger.info(f'Account {account.name} is up to date on {host.name}')

    for cmd in cmds:
        yield StringCommand(cmd)


@operation()
def ensure_authorized_key(account: tasks.config.Account, public_key: PublicKey):
    home = get_home(account, host.get_fact(Users).get(account.name))
    lines = host.get_fact(facts.base.AuthorizedKeys, path=get_authorized_keys_file(home), _sudo=True)

    if is_key_present(lines, public_key):
        return

    for cmd in get_authorized_key_commands(account, home, public_key):
        yield StringCommand(cmd)


def grant_passwordless_sudo(account: tasks.config.Account):
    files.put(
        name=f'Grant passwordless sudo to {account.name}',
        src=io.StringIO(get_sudoers_content(account)),
        dest=get_sudoers_file(account),
        user='root',
        group='root',
        mode=SUDOERS_MODE,
        _sudo=True,
    )


def run(config: tasks.config.Config, public_key: PublicKey):
    account = config.access.account

    ensure_account(account, _sudo=True)
    ensure_authorized_key(account, public_key, _sudo=True)

    if config.access.sudo:
        grant_passwordless_sudo(account)
