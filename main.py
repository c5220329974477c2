from pyinfra import host, logger

import tasks.accounts
import tasks.build
import tasks.config
import tasks.credentials
import tasks.pkg
import tasks.rvm
import tasks.sshd

ACCESS_GROUP = 'access'
RUNTIME_GROUP = 'runtime'

config = tasks.config.get_config()

for warning in tasks.config.check_accounts(config):
    logger.warning(warning)

public_key = tasks.credentials.run(config)

if ACCESS_GROUP in host.groups:
    tasks.accounts.run(config, public_key)
    tasks.sshd.run(config)

if RUNTIME_GROUP in host.groups:
    tasks.pkg.run(config)
    tasks.build.run(config)
    tasks.rvm.run(config)
