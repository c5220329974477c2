import tasks.config as _config


def _get_hosts(hosts):
    # `[name, {data}]` pairs in YAML become pyinfra's `(name, data)` tuples
    return [tuple(h) if isinstance(h, list) else h for h in hosts]


_hosts = _config.get_config().hosts

access = _get_hosts(_hosts.access)
runtime = _get_hosts(_hosts.runtime)
