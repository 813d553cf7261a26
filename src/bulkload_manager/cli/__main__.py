"""
Entry point of the `bulkloadm` command.

Loads the `.env` session variables before the click group runs, so that
`load` and `status` can build the Salesforce service from them. Logging is
configured by the group itself from its -v/-q flags.
"""

import sys
import click
import logging

from ..core.utils.environment import setup_environment


def main():
    """Run the bulkloadm CLI; Ctrl-C exits with status 130."""
    setup_environment(verbose='-v' in sys.argv or '--verbose' in sys.argv)

    from .cli import cli
    try:
        cli.main(prog_name='bulkloadm', standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except (click.exceptions.Abort, KeyboardInterrupt):
        # Submissions are aborted on interrupt; a closed job keeps running remotely
        logging.warning("Interrupted by user. Check remote jobs with 'bulkloadm status JOB_ID'.")
        sys.exit(130)


if __name__ == '__main__':
    main()
