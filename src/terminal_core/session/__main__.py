"""Allow running a viewer session as: python -m terminal_core.session --account-id N."""

import argparse

from terminal_core.session.runner import main


def cli(argv=None):
    parser = argparse.ArgumentParser(description="Trading terminal polling session")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--account-id", type=int, required=True, help="Viewing account id")
    parser.add_argument("--scope", default="default", help="Viewer scope (e.g. a device name)")
    args = parser.parse_args(argv)
    main(config_path=args.config, account_id=args.account_id, scope=args.scope)


if __name__ == "__main__":
    cli()
