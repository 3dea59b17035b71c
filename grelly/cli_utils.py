"""
Common CLI utilities and decorators for consistent command behavior.
"""

import json
import logging
import sys
import click
from functools import wraps
from typing import Any

from rich.console import Console
from rich.markup import escape

from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)

logger = logging.getLogger(__name__)

# Messages for humans go to stderr; stdout carries only the version or JSON
err_console = Console(stderr=True, soft_wrap=True, highlight=False)


def standard_command(json_flag: str = 'as_json'):
    """
    Decorator that provides standard CLI behavior:
    - The returned result printed on stdout (plain, or JSON with --json)
    - Error messages on stderr
    - One exit code per error kind

    Args:
        json_flag: Name of the keyword argument that selects JSON output
    """
    def decorator(func):

        @wraps(func)
        def wrapper(*args, **kwargs):
            as_json = kwargs.get(json_flag, False)

            try:
                result = func(*args, **kwargs)
                if result is not None:
                    output_result(result, as_json)

                sys.exit(SUCCESS)

            except KeyboardInterrupt:
                report_error("Interrupted by user")
                sys.exit(INTERRUPTED)
            except click.ClickException:
                # Click exceptions already have their exit code
                raise
            except CommandError as e:
                report_error(str(e))
                if as_json:
                    error_obj = {
                        "error": str(e),
                        "type": type(e).__name__,
                        "exit_code": e.exit_code
                    }
                    print(json.dumps(error_obj, ensure_ascii=False), flush=True)
                sys.exit(e.exit_code)
            except Exception as e:
                logger.debug("Unexpected error", exc_info=True)
                report_error(f"Command failed: {e}")
                if as_json:
                    error_obj = {
                        "error": str(e),
                        "type": type(e).__name__
                    }
                    print(json.dumps(error_obj, ensure_ascii=False), flush=True)
                sys.exit(get_exit_code_for_exception(e))

        return wrapper
    return decorator


def output_result(result: Any, as_json: bool = False):
    """
    Standard output handler for results.

    Args:
        result: A string, or an object with to_dict()/a dict for JSON
        as_json: Emit a single JSON object instead of plain text
    """
    if as_json:
        if hasattr(result, 'to_dict'):
            result = result.to_dict()
        print(json.dumps(result, ensure_ascii=False), flush=True)
    else:
        print(result, flush=True)


def report_error(message: str):
    err_console.print(f"[red]Error:[/red] {escape(message)}")


def report(message: str):
    """Print a human-oriented status line on stderr."""
    err_console.print(escape(message))


# Standard options that commands share
common_options = {
    'verbose': click.option('-v', '--verbose', is_flag=True,
                            help='Log debug output to stderr'),
    'dry_run': click.option('--dry-run', is_flag=True,
                            help='Preview changes without writing them'),
    'json': click.option('--json', 'as_json', is_flag=True,
                         help='Emit one JSON object instead of the plain version'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('verbose', 'dry_run')
        def my_command(verbose, dry_run):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
