from datetime import datetime
import shlex
from typing import List

from pyinfra import host, logger
from pyinfra.api import FunctionCommand, StringCommand, operation

import facts.base
import tasks.config
import tasks.ops

RELOAD_COMMAND = 'systemctl reload ssh || systemctl reload sshd'


class ProbeError(Exception):
    pass


def get_pattern(policy: tasks.config.SshPolicy) -> str:
    return f'^{policy.directive}([[:space:]]|$)'


def get_probe_command(private_key: str, user: str, hostname: str, port: int) -> str:
    options = [
        '-o BatchMode=yes',
        '-o PasswordAuthentication=no',
        '-o KbdInteractiveAuthentication=no',
        '-o StrictHostKeyChecking=accept-new',
        '-o ConnectTimeout=10',
    ]
    return f'ssh -i {shlex.quote(private_key)} {" ".join(options)} -p {port} {shlex.quote(f"{user}@{hostname}")} true'


def probe_key_login(private_key: str, user: str, hostname: str, port: int):
    cmd = get_probe_command(private_key, user, hostname, port)

    try:
        tasks.ops.run_command(cmd)
    except tasks.ops.CommandError as e:
        raise ProbeError(f'Key based login as {user}@{hostname} failed, refusing to tighten SSH policy: {e}') from e

    logger.info(f'Key based login as {user}@{hostname} succeeded')


def get_backup_file(path: str, suffix_format: str, now: datetime = None) -> str:
    now = now or datetime.now()
    return f'{path}.{now.strftime(suffix_format)}'


def get_policy_commands(policy: tasks.config.SshPolicy, matching_lines: List[str], backup_file: str) -> List[str]:
    if matching_lines == [policy.line]:
        return []

    path = shlex.quote(policy.path)
    line = shlex.quote(policy.line)
    cmds = [f'cp -p {path} {shlex.quote(backup_file)}']

    if not matching_lines:
        cmds.extend([
            f"sed -i -e '$a\\' {path}",
            f'printf "%s\\n" {line} >> {path}',
        ])
        return cmds

    # keep the position of the first directive, drop the rest
    program = f'/{get_pattern(policy)}/ {{ if (!seen++) print line; next }} {{ print }}'
    tmp_file = shlex.quote(f'{policy.path}.tmp')
    cmds.append(f'awk -v line={line} {shlex.quote(program)} {path} > {tmp_file} && cat {tmp_file} > {path} && rm {tmp_file}')

    return cmds


def get_probe_target():
    hostname = host.data.get('ssh_hostname') or host.name
    port = host.data.get('ssh_port')
    return hostname, port


@operation()
def enforce_policy(policy: tasks.config.SshPolicy, user: str, private_key: str, backup_file: str):
    lines = host.get_fact(facts.base.MatchingLines, path=policy.path, pattern=get_pattern(policy), _sudo=True)

    cmds = get_policy_commands(policy, lines, backup_file)
    if not cmds:
        return

    if policy.probe:
        hostname, port = get_probe_target()
        yield FunctionCommand(probe_key_login, [private_key, user, hostname, port or policy.probe_port], {})
    else:
        logger.warning(f'Setting `{policy.line}` on {host.name} without probing key based login')

    for cmd in cmds:
        yield StringCommand(cmd)

    if policy.reload:
        yield StringCommand(f'/usr/sbin/sshd -t -f {shlex.quote(policy.path)}')
        yield StringCommand(RELOAD_COMMAND)


def run(config: tasks.config.Config):
    policy = config.access.ssh_policy
    backup_file = get_backup_file(policy.path, config.settings.backup_suffix)

    enforce_policy(policy, config.access.account.name, config.key_pair.path, backup_file, _sudo=True)
