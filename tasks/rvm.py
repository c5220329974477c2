import functools
import shlex
from typing import List

from pyinfra import host, logger
from pyinfra.api import FunctionCommand, StringCommand, operation
from pyinfra.facts.server import Users
from pyinfra.operations import files

import tasks.config
from tasks.ops import Mode, as_user, join_script, with_mode
import tasks.unless

GNUPG_MODE = '700'
RVM_SCRIPT = '~/.rvm/scripts/rvm'


def get_home(user: str) -> str:
    users = host.get_fact(Users)
    if user in users and users[user].get('home'):
        return users[user]['home']

    return f'/home/{user}'


def with_rvm(*cmds: str) -> str:
    return join_script([f'source {RVM_SCRIPT}', *cmds])


def get_trust_commands(manager: tasks.config.VersionManager, user: str, gnupg_home: str) -> List[str]:
    env = f'GNUPGHOME={shlex.quote(gnupg_home)}'
    cmds = []

    if manager.keys:
        keys = ' '.join(manager.keys)
        cmds.append(f'{env} gpg --batch --keyserver {shlex.quote(manager.keyserver)} --recv-keys {keys}')

    for url in manager.key_urls:
        cmds.append(f'curl -sSL {shlex.quote(url)} | {env} gpg --batch --import -')

    return [with_mode(as_user(user, cmd), Mode.BEST_EFFORT) for cmd in cmds]


def get_manager_install_command(manager: tasks.config.VersionManager, user: str) -> str:
    return as_user(user, f'curl -sSL {shlex.quote(manager.installer_url)} | bash -s {manager.channel}')


def get_interpreter_dir(home: str, interpreter: tasks.config.Interpreter) -> str:
    return f'{home}/.rvm/rubies/{interpreter.name}-{interpreter.version}'


def get_interpreter_install_command(interpreter: tasks.config.Interpreter, library: tasks.config.Library,
                                    user: str) -> str:
    install = f'rvm install {interpreter.version} --with-openssl-dir={shlex.quote(library.prefix)}'
    return as_user(user, with_rvm(install))


def get_default_command(interpreter: tasks.config.Interpreter, user: str) -> str:
    return as_user(user, with_rvm(f'rvm use {interpreter.version} --default'))


def get_version_command(interpreter: tasks.config.Interpreter, user: str) -> str:
    return as_user(user, with_rvm(f'{interpreter.name} -v'))


def get_deploy_command(deployment: tasks.config.Deployment, user: str) -> str:
    return f'cap {shlex.quote(deployment.stage)} deploy BRANCH={shlex.quote(deployment.branch)} USERNAME={shlex.quote(user)}'


def get_deploy_commands(deployment: tasks.config.Deployment, user: str) -> List[str]:
    return [
        as_user(user, with_rvm(f'gem install --conservative {deployment.dependency_manager}')),
        as_user(user, with_rvm(f'cd {shlex.quote(deployment.app_path)}', get_deploy_command(deployment, user))),
    ]


def verify_interpreter(state, host, interpreter: tasks.config.Interpreter, user: str):
    status, output = host.run_shell_command(StringCommand(get_version_command(interpreter, user)))
    if not status:
        logger.error(f'{interpreter.name} {interpreter.version} does not run for {user} on {host.name}: {output.stderr}')
        return False

    logger.info(f'{interpreter.name} version on {host.name} is: {output.stdout}')
    return True


def ensure_gnupg_home(user: str, group: str):
    files.directory(
        name=f'Ensure GPG directory for {user}',
        path=f'{get_home(user)}/.gnupg',
        user=user,
        group=group,
        mode=GNUPG_MODE,
        _sudo=True,
    )


@operation()
def import_trust(manager: tasks.config.VersionManager, user: str):
    gnupg_home = f'{get_home(user)}/.gnupg'

    for cmd in get_trust_commands(manager, user, gnupg_home):
        yield StringCommand(cmd)


@operation()
def install_manager(manager: tasks.config.VersionManager, user: str):
    get_fact = functools.partial(host.get_fact, _sudo=True)
    unless = tasks.unless.UnlessDir(dir=f'{get_home(user)}/.rvm')

    if not unless.should_proceed(get_fact):
        logger.info(f'RVM is already installed for {user} on {host.name}')
        return

    yield StringCommand(get_manager_install_command(manager, user))


@operation()
def install_interpreter(interpreter: tasks.config.Interpreter, library: tasks.config.Library, user: str):
    get_fact = functools.partial(host.get_fact, _sudo=True)
    unless = tasks.unless.UnlessDir(dir=get_interpreter_dir(get_home(user), interpreter))

    if unless.should_proceed(get_fact):
        yield StringCommand(get_interpreter_install_command(interpreter, library, user))

    yield StringCommand(get_default_command(interpreter, user))
    yield FunctionCommand(verify_interpreter, [interpreter, user], {})


@operation(is_idempotent=False)
def deploy(deployment: tasks.config.Deployment, user: str):
    for cmd in get_deploy_commands(deployment, user):
        yield StringCommand(cmd)


def run(config: tasks.config.Config):
    runtime = config.runtime

    ensure_gnupg_home(runtime.user, runtime.group)
    import_trust(runtime.version_manager, runtime.user)
    install_manager(runtime.version_manager, runtime.user)
    install_interpreter(runtime.interpreter, runtime.library, runtime.user)
    deploy(runtime.deployment, runtime.user)
