import re

from pyinfra import host
from pyinfra.facts.server import LinuxDistribution
from pyinfra.operations import apt, dnf

import tasks.config

INSTALLERS = {
    apt: {'debian', 'ubuntu'},
    dnf: {'fedora', 'rhel', 'rocky', 'almalinux', 'centos'},
}


def get_packages(current_dist_id, packages):
    package_set = set()
    for dist_id, dist_packages in packages.items():
        is_re = re.escape(dist_id) != dist_id
        if is_re and re.fullmatch(dist_id, current_dist_id):
            package_set.update(dist_packages)
        elif dist_id == current_dist_id:
            package_set.update(dist_packages)

    return sorted(package_set)


def get_installer(dist_id):
    id_to_installer = {}
    for installer, ids in INSTALLERS.items():
        for os_id in ids:
            id_to_installer[os_id] = installer

    if dist_id not in id_to_installer:
        raise Exception(f'No package installer known for distribution {dist_id}')

    return id_to_installer[dist_id]


def run(cfg: tasks.config.Config):
    dist_id = host.get_fact(LinuxDistribution)['release_meta']['ID']

    pkgs = get_packages(dist_id, cfg.runtime.packages)
    if not pkgs:
        return

    installer = get_installer(dist_id)
    installer.packages(name='Install build dependencies', packages=pkgs, update=True, _sudo=True)
