from dataclasses import dataclass, field, fields
import os
from typing import Dict, List, Union

import yaml

CONFIG_ENV_KEY = 'ACQUIFLOW_CONFIG'
DEFAULT_CONFIG_FILE = '~/.config/acquiflow/acquiflow.yml'

DEFAULT_PACKAGES = {
    '(debian|ubuntu)': [
        'build-essential',
        'curl',
        'gpg',
        'libffi-dev',
        'libgdbm-dev',
        'libncurses5-dev',
        'libreadline-dev',
        'libsqlite3-dev',
        'libyaml-dev',
        'zlib1g-dev',
    ],
}


class ConfigError(Exception):
    pass


@dataclass
class Settings:
    backup_suffix: str = '%Y-%m-%d@%H:%M:%S~'


@dataclass
class KeyPair:
    path: str = '/var/lib/jenkins/.ssh/id_rsa'
    public_path: str = ''
    type: str = 'rsa'
    size: int = 2048

    def __post_init__(self):
        if not self.public_path:
            self.public_path = f'{self.path}.pub'


@dataclass
class Account:
    name: str = 'rpx'
    shell: str = '/bin/bash'
    groups: List[str] = field(default_factory=lambda: ['sudo'])
    home: str = ''

    def __post_init__(self):
        if not self.home:
            self.home = f'/home/{self.name}'


@dataclass
class SshPolicy:
    path: str = '/etc/ssh/sshd_config'
    directive: str = 'PasswordAuthentication'
    value: str = 'no'
    probe: bool = True
    probe_port: int = 22
    reload: bool = False

    @property
    def line(self):
        return f'{self.directive} {self.value}'


@dataclass
class Access:
    account: Account = field(default_factory=Account)
    sudo: bool = True
    ssh_policy: SshPolicy = field(default_factory=SshPolicy)


@dataclass
class Library:
    name: str = 'openssl'
    version: str = '1.1.1w'
    url: str = 'https://www.openssl.org/source/openssl-${version}.tar.gz'
    prefix: str = '/opt/openssl-1.1'
    src_dir: str = '/usr/local/src'
    configure: str = './config --prefix=${prefix} --openssldir=${prefix} shared zlib'
    unless: Dict[str, str] = field(default_factory=lambda: {'ls': '${prefix}/bin/openssl'})


@dataclass
class VersionManager:
    installer_url: str = 'https://get.rvm.io'
    channel: str = 'stable'
    keyserver: str = 'hkp://keyserver.ubuntu.com'
    keys: List[str] = field(default_factory=lambda: [
        '409B6B1796C275462A1703113804BB82D39DC0E3',
        '7D2BAF1CF37B13E2069D6956105BD0E739499BDB',
    ])
    key_urls: List[str] = field(default_factory=lambda: [
        'https://rvm.io/mpapis.asc',
        'https://rvm.io/pkuczynski.asc',
    ])


@dataclass
class Interpreter:
    name: str = 'ruby'
    version: str = '3.0.0'


@dataclass
class Deployment:
    app_path: str = '/home/rpx/app'
    branch: str = 'master'
    stage: str = 'qa'
    dependency_manager: str = 'bundler'


@dataclass
class Runtime:
    user: str = 'rpx'
    group: str = 'rpx'
    packages: Dict[str, List[str]] = field(default_factory=lambda: dict(DEFAULT_PACKAGES))
    library: Library = field(default_factory=Library)
    version_manager: VersionManager = field(default_factory=VersionManager)
    interpreter: Interpreter = field(default_factory=Interpreter)
    deployment: Deployment = field(default_factory=Deployment)


@dataclass
class Hosts:
    access: List[Union[str, list]] = field(default_factory=list)
    runtime: List[Union[str, list]] = field(default_factory=list)


@dataclass
class Config:
    access: Access = field(default_factory=Access)
    hosts: Hosts = field(default_factory=Hosts)
    key_pair: KeyPair = field(default_factory=KeyPair)
    runtime: Runtime = field(default_factory=Runtime)
    settings: Settings = field(default_factory=Settings)


NESTED = {
    (Access, 'account'): Account,
    (Access, 'ssh_policy'): SshPolicy,
    (Config, 'access'): Access,
    (Config, 'hosts'): Hosts,
    (Config, 'key_pair'): KeyPair,
    (Config, 'runtime'): Runtime,
    (Config, 'settings'): Settings,
    (Runtime, 'deployment'): Deployment,
    (Runtime, 'interpreter'): Interpreter,
    (Runtime, 'library'): Library,
    (Runtime, 'version_manager'): VersionManager,
}


def build(cls, content: Dict, section: str = 'config'):
    if content is None:
        content = {}
    if not isinstance(content, dict):
        raise ConfigError(f'Section `{section}` must be a mapping, got {type(content).__name__}')

    known = {f.name for f in fields(cls)}
    unknown = sorted(set(content) - known)
    if unknown:
        raise ConfigError(f'Unknown keys in section `{section}`: {", ".join(unknown)}')

    kwargs = {}
    for k, v in content.items():
        if nested_cls := NESTED.get((cls, k)):
            v = build(nested_cls, v, f'{section}.{k}')
        kwargs[k] = v

    return cls(**kwargs)


def get_config_file(path: str = None) -> str:
    path = path or os.getenv(CONFIG_ENV_KEY, DEFAULT_CONFIG_FILE)
    return os.path.expanduser(path)


def get_config(path: str = None) -> Config:
    config_file = get_config_file(path)

    if not os.path.exists(config_file):
        raise ConfigError(f'Config file {config_file} does not exist')

    with open(config_file) as f:
        cfg_dict = yaml.load(f, Loader=yaml.SafeLoader)

    return build(Config, cfg_dict)


def check_accounts(config: Config) -> List[str]:
    warnings = []

    access_user = config.access.account.name
    runtime_user = config.runtime.user
    if access_user != runtime_user:
        warnings.append(f'Access account `{access_user}` differs from runtime account `{runtime_user}`')

    if not config.runtime.deployment.app_path.startswith(f'/home/{runtime_user}/'):
        warnings.append(f'Deployment path {config.runtime.deployment.app_path} is outside the home of `{runtime_user}`')

    return warnings
