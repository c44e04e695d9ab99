"""Main CLI entry point for esbridge."""

import sys
import click
from esbridge import __version__
from esbridge.cli.logging_config import configure_logging
from esbridge.errors import (
    EXIT_SUCCESS,
    EXIT_ERROR,
    EXIT_INVALID_ARGS,
    ConfigError,
    EsbridgeError,
)


@click.group()
@click.version_option(version=__version__)
def cli():
    """esbridge: inspect and page through Elasticsearch-compatible servers"""
    pass


@cli.command('ping')
@click.option('--url', envvar='ESBRIDGE_URL', help='Server URL (default: http://localhost:9200)')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), help='YAML config file')
@click.option('--debug', is_flag=True, help='Debug mode (show all request tracing)')
@click.option('--json', 'output_json', is_flag=True, help='Output JSON format')
def ping(url, config_path, debug, output_json):
    """Check that the server answers (exit 1 when down)"""
    from esbridge.cli.commands import ping_command
    configure_logging(debug=debug)
    ping_command(url, config_path, output_json)


@cli.command('info')
@click.option('--url', envvar='ESBRIDGE_URL', help='Server URL (default: http://localhost:9200)')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), help='YAML config file')
@click.option('--debug', is_flag=True, help='Debug mode (show all request tracing)')
@click.option('--json', 'output_json', is_flag=True, help='Output JSON format')
def info(url, config_path, debug, output_json):
    """Show cluster name and version"""
    from esbridge.cli.commands import info_command
    configure_logging(debug=debug)
    info_command(url, config_path, output_json)


@cli.command('count')
@click.argument('index')
@click.option('--query', help='Query DSL as JSON, e.g. \'{"term": {"lang": "en"}}\'')
@click.option('--url', envvar='ESBRIDGE_URL', help='Server URL (default: http://localhost:9200)')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), help='YAML config file')
@click.option('--debug', is_flag=True, help='Debug mode (show all request tracing)')
@click.option('--json', 'output_json', is_flag=True, help='Output JSON format')
def count(index, query, url, config_path, debug, output_json):
    """Count documents in INDEX"""
    from esbridge.cli.commands import count_command
    configure_logging(debug=debug)
    count_command(index, query, url, config_path, output_json)


@cli.command('search')
@click.argument('index')
@click.option('--query', help='Query DSL as JSON (default: match_all)')
@click.option('--sort', multiple=True, help='Sort clause FIELD[:asc|desc], repeatable')
@click.option('--size', type=click.IntRange(min=0), default=10, help='Page size (default: 10)')
@click.option('--after', help='Cursor from a previous page, as a JSON array')
@click.option('--signature', help='Cursor type signature: i=int, f=float, s=string (e.g. "is")')
@click.option('--url', envvar='ESBRIDGE_URL', help='Server URL (default: http://localhost:9200)')
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), help='YAML config file')
@click.option('--verbose', '-v', is_flag=True, help='Show sort values of every hit')
@click.option('--debug', is_flag=True, help='Debug mode (show all request tracing)')
@click.option('--json', 'output_json', is_flag=True, help='Output JSON format')
def search(index, query, sort, size, after, signature, url, config_path, verbose, debug, output_json):
    """Fetch one page of INDEX using search_after pagination

    \b
    Examples:
      esb search books --sort published:desc --sort isbn
      esb search books --sort published:desc --sort isbn --after '[1700000000000, "978-0441013593"]'
    """
    from esbridge.cli.commands import search_command
    configure_logging(verbose=verbose, debug=debug)
    search_command(index, query, list(sort), size, after, signature, url, config_path, output_json, verbose)


def main():
    """Main CLI entry point with structured error handling."""
    try:
        cli(standalone_mode=False)
        return EXIT_SUCCESS
    except click.exceptions.Abort:
        print("\n[INFO] Operation cancelled by user", file=sys.stderr)
        return EXIT_ERROR
    except click.ClickException as e:
        # Usage errors and bad parameters
        e.show()
        return EXIT_INVALID_ARGS
    except ConfigError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_INVALID_ARGS
    except KeyboardInterrupt:
        print("\n[INFO] Operation cancelled by user", file=sys.stderr)
        return EXIT_ERROR
    except EsbridgeError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return e.exit_code
    except FileNotFoundError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return EXIT_INVALID_ARGS
    except Exception as e:
        print(f"[ERROR] Unexpected error: {e}", file=sys.stderr)
        if '--debug' in sys.argv:
            import traceback
            traceback.print_exc()
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())
