"""CLI tests for the esb click group and main() exit code mapping."""

import json
import sys
from unittest.mock import MagicMock, patch

from click.testing import CliRunner

from esbridge import __version__
from esbridge.cli.main import cli, main
from esbridge.errors import (
    EXIT_CONFLICT,
    EXIT_ERROR,
    EXIT_INVALID_ARGS,
    EXIT_NOT_FOUND,
    EXIT_SUCCESS,
    EXIT_TRANSPORT,
    ConfigError,
    ConflictError,
    NotFoundError,
    TransportError,
)


class TestCliGroup:

    def test_version(self):
        result = CliRunner().invoke(cli, ['--version'])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self):
        result = CliRunner().invoke(cli, ['--help'])

        assert result.exit_code == 0
        for command in ('ping', 'info', 'count', 'search'):
            assert command in result.output

    def test_search_wires_options(self):
        with patch('esbridge.cli.commands.search_command') as mock_search:
            result = CliRunner().invoke(cli, [
                'search', 'books', '--sort', 'ts:desc', '--sort', 'id',
                '--size', '50', '--after', '[1676432653945685122, "a"]',
                '--signature', 'is', '--url', 'http://es.test:9200', '--json',
            ])

        assert result.exit_code == 0, result.output
        mock_search.assert_called_once_with(
            'books', None, ['ts:desc', 'id'], 50, '[1676432653945685122, "a"]', 'is',
            'http://es.test:9200', None, True, False,
        )

    def test_url_from_environment(self):
        with patch('esbridge.cli.commands.count_command') as mock_count:
            result = CliRunner().invoke(cli, ['count', 'books'], env={'ESBRIDGE_URL': 'http://env:9200'})

        assert result.exit_code == 0, result.output
        assert mock_count.call_args.args[2] == 'http://env:9200'

    def test_negative_size_rejected(self):
        result = CliRunner().invoke(cli, ['search', 'books', '--size', '-1'])

        assert result.exit_code == 2

    def test_count_json_end_to_end(self):
        client = MagicMock()
        client.count.return_value = 3
        with patch('esbridge.cli.commands.create_client', return_value=client):
            result = CliRunner().invoke(cli, ['count', 'books', '--json'])

        assert result.exit_code == 0
        assert json.loads(result.output)['data'] == {"index": "books", "count": 3}


class TestMain:

    def run_main(self, error, capsys):
        with patch.object(sys, 'argv', ['esb', 'ping']):
            with patch('esbridge.cli.main.cli', side_effect=error):
                code = main()
        return code, capsys.readouterr().err

    def test_success(self):
        with patch('esbridge.cli.main.cli'):
            assert main() == EXIT_SUCCESS

    def test_not_found(self, capsys):
        code, err = self.run_main(NotFoundError(), capsys)

        assert code == EXIT_NOT_FOUND
        assert err.startswith("[ERROR] Not Found")

    def test_conflict(self, capsys):
        code, _ = self.run_main(ConflictError(), capsys)

        assert code == EXIT_CONFLICT

    def test_transport(self, capsys):
        code, err = self.run_main(TransportError("connection refused"), capsys)

        assert code == EXIT_TRANSPORT
        assert "connection refused" in err

    def test_config_error(self, capsys):
        code, _ = self.run_main(ConfigError("no search server address provided"), capsys)

        assert code == EXIT_INVALID_ARGS

    def test_missing_config_file(self, capsys):
        code, _ = self.run_main(FileNotFoundError("Config file not found: x.yaml"), capsys)

        assert code == EXIT_INVALID_ARGS

    def test_unexpected(self, capsys):
        code, err = self.run_main(RuntimeError("boom"), capsys)

        assert code == EXIT_ERROR
        assert "[ERROR] Unexpected error: boom" in err

    def test_usage_error(self, capsys):
        with patch.object(sys, 'argv', ['esb', 'search']):
            assert main() == EXIT_INVALID_ARGS
