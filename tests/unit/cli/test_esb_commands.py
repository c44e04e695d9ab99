"""CLI tests for esb command implementations.

Tests call the *_command functions directly with a mocked SearchClient.
"""

import json
from unittest.mock import MagicMock, patch

import click
import pytest

from esbridge.errors import ConfigError
from esbridge.models import ClusterInfo, SearchResponse
from esbridge.sort import SortValues


def make_page(sorts, total=None):
    hits = [{"_index": "books", "_id": str(i), "_score": 1.0, "_source": {"n": i}, "sort": s}
            for i, s in enumerate(sorts)]
    return SearchResponse.model_validate({
        "took": 4,
        "hits": {"total": {"value": len(sorts) if total is None else total}, "hits": hits},
    })


@pytest.fixture
def mock_client():
    client = MagicMock()
    client.config.url = "http://es.test:9200"
    return client


class TestCreateClient:

    def test_url_overrides_environment(self, clean_env, monkeypatch):
        from esbridge.cli.commands import create_client

        monkeypatch.setenv("ESBRIDGE_URL", "http://env:9200")
        monkeypatch.setenv("ESBRIDGE_TIMEOUT", "7")
        client = create_client(url="http://flag:9200")

        assert client.config.url == "http://flag:9200"
        assert client.config.request_timeout == 7.0

    def test_config_file(self, tmp_path):
        from esbridge.cli.commands import create_client

        path = tmp_path / "esbridge.yaml"
        path.write_text("hosts:\n  - http://file:9200\n")

        assert create_client(config_path=str(path)).config.url == "http://file:9200"


class TestParsing:

    def test_sort_option(self):
        from esbridge.cli.commands import parse_sort_option

        assert parse_sort_option(["date:desc", "id"]) == [{"date": "desc"}, {"id": "asc"}]

    @pytest.mark.parametrize("item", [":asc", "date:down"])
    def test_bad_sort_option(self, item):
        from esbridge.cli.commands import parse_sort_option

        with pytest.raises(click.BadParameter):
            parse_sort_option([item])

    def test_json_option(self):
        from esbridge.cli.commands import parse_json_option

        assert parse_json_option(None, "--query") is None
        assert parse_json_option('{"a": 1}', "--query") == {"a": 1}
        with pytest.raises(click.BadParameter):
            parse_json_option("{", "--query")


class TestPing:

    def test_up_json(self, mock_client, capsys):
        from esbridge.cli.commands import ping_command

        mock_client.ping.return_value = True
        with patch('esbridge.cli.commands.create_client', return_value=mock_client):
            with pytest.raises(SystemExit) as exc_info:
                ping_command(None, None, output_json=True)

        assert exc_info.value.code == 0
        output = json.loads(capsys.readouterr().out)
        assert output['status'] == 'success'
        assert output['data'] == {"url": "http://es.test:9200", "alive": True}

    def test_down_exits_one(self, mock_client):
        from esbridge.cli.commands import ping_command

        mock_client.ping.return_value = False
        with patch('esbridge.cli.commands.create_client', return_value=mock_client):
            with pytest.raises(SystemExit) as exc_info:
                ping_command(None, None, output_json=False)

        assert exc_info.value.code == 1


class TestInfo:

    def test_json(self, mock_client, capsys):
        from esbridge.cli.commands import info_command

        mock_client.info.return_value = ClusterInfo.model_validate({
            "name": "n1", "cluster_name": "docker-cluster", "version": {"number": "8.11.0"},
        })
        with patch('esbridge.cli.commands.create_client', return_value=mock_client):
            with pytest.raises(SystemExit) as exc_info:
                info_command(None, None, output_json=True)

        assert exc_info.value.code == 0
        output = json.loads(capsys.readouterr().out)
        assert output['data']['version']['number'] == "8.11.0"


class TestCount:

    def test_passes_query(self, mock_client, capsys):
        from esbridge.cli.commands import count_command

        mock_client.count.return_value = 12
        with patch('esbridge.cli.commands.create_client', return_value=mock_client):
            with pytest.raises(SystemExit):
                count_command("books", '{"term": {"lang": "en"}}', None, None, output_json=False)

        mock_client.count.assert_called_once_with("books", {"term": {"lang": "en"}})
        assert capsys.readouterr().out.strip() == "12"


class TestSearch:

    def run(self, mock_client, **overrides):
        from esbridge.cli.commands import search_command

        args = dict(index="books", query=None, sort=["ts:asc", "id"], size=2, after=None,
                    signature=None, url=None, config_path=None, output_json=True, verbose=False)
        args.update(overrides)
        with patch('esbridge.cli.commands.create_client', return_value=mock_client):
            with pytest.raises(SystemExit) as exc_info:
                search_command(**args)
        return exc_info.value.code

    def test_json_output_has_next_cursor(self, mock_client, capsys):
        mock_client.search_page.return_value = make_page([[1676432653945685120, "a"], [1676432653945685121, "b"]])

        assert self.run(mock_client) == 0

        output = json.loads(capsys.readouterr().out)
        assert output['data']['total'] == 2
        assert output['data']['next_after'] == '[1676432653945685121, "b"]'
        assert output['data']['hits'][1]['sort'] == [1676432653945685121, "b"]

        kwargs = mock_client.search_page.call_args.kwargs
        assert kwargs['sort'] == [{"ts": "asc"}, {"id": "asc"}]
        assert kwargs['search_after'] is None

    def test_after_is_decoded_exactly(self, mock_client):
        mock_client.search_page.return_value = make_page([])

        self.run(mock_client, after='[1676432653945685121, "b"]')

        cursor = mock_client.search_page.call_args.kwargs['search_after']
        assert isinstance(cursor, SortValues)
        assert cursor.values() == [1676432653945685121, "b"]

    def test_after_with_signature(self, mock_client):
        mock_client.search_page.return_value = make_page([])

        self.run(mock_client, after='[3, "b"]', signature="fs")

        assert mock_client.search_page.call_args.kwargs['search_after'].values() == [3.0, "b"]

    def test_invalid_after(self, mock_client):
        from esbridge.cli.commands import search_command

        with pytest.raises(click.BadParameter):
            search_command("books", None, ["id"], 10, "[1,", None, None, None, True, False)

    def test_after_requires_sort(self, mock_client):
        with pytest.raises(ConfigError):
            self.run(mock_client, sort=[], after="[1]")

    def test_text_output(self, mock_client, capsys):
        mock_client.search_page.return_value = make_page([[1, "a"], [2, "b"]])

        assert self.run(mock_client, output_json=False, verbose=True) == 0

        out = capsys.readouterr().out
        assert "books/1" in out
        assert "Next page: --after '[2, \"b\"]'" in out

    def test_text_output_empty(self, mock_client, capsys):
        mock_client.search_page.return_value = make_page([])

        self.run(mock_client, output_json=False)

        assert "No results found" in capsys.readouterr().out
