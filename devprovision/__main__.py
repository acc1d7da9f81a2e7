"""Allow ``python -m devprovision``."""

from devprovision.main import cli

cli()
