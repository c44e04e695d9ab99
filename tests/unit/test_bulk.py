"""Tests for bulk body encoding and bulk responses."""

import json

import pytest

from esbridge.bulk import BulkAction, BulkResponse, encode_bulk


class TestEncodeBulk:

    def test_lines_and_trailing_newline(self):
        body = encode_bulk([
            BulkAction("index", index="books", id="1", document={"title": "Dune"}),
            BulkAction("create", index="books", document={"title": "Emma"}),
            BulkAction("update", index="books", id="2", document={"year": 1989}),
            BulkAction("delete", index="books", id="3"),
        ])
        text = body.decode("utf-8")
        lines = text.split("\n")

        assert text.endswith("\n")
        assert lines[-1] == ""
        # 4 action lines + 3 source lines
        assert len(lines) - 1 == 7
        assert json.loads(lines[0]) == {"index": {"_index": "books", "_id": "1"}}
        assert json.loads(lines[1]) == {"title": "Dune"}
        assert json.loads(lines[2]) == {"create": {"_index": "books"}}
        assert json.loads(lines[5]) == {"doc": {"year": 1989}}
        assert json.loads(lines[6]) == {"delete": {"_index": "books", "_id": "3"}}

    def test_index_from_path(self):
        body = encode_bulk([BulkAction("delete", id=7)])

        assert body == b'{"delete":{"_id":"7"}}\n'

    def test_big_integers_exact(self):
        body = encode_bulk([BulkAction("index", id="1", document={"ts": 1676432653945685122})])

        assert b"1676432653945685122" in body

    def test_unknown_op(self):
        with pytest.raises(ValueError, match="unknown bulk operation"):
            encode_bulk([BulkAction("upsert", id="1", document={})])

    @pytest.mark.parametrize("op", ["update", "delete"])
    def test_missing_id(self, op):
        with pytest.raises(ValueError, match="requires a document id"):
            encode_bulk([BulkAction(op, document={"a": 1})])

    @pytest.mark.parametrize("op", ["index", "create", "update"])
    def test_missing_document(self, op):
        with pytest.raises(ValueError, match="requires a document"):
            encode_bulk([BulkAction(op, id="1")])

    def test_empty(self):
        with pytest.raises(ValueError):
            encode_bulk([])


class TestBulkResponse:

    def test_error_items(self):
        response = BulkResponse.model_validate({
            "took": 30,
            "errors": True,
            "items": [
                {"index": {"_index": "books", "_id": "1", "_version": 1, "result": "created", "status": 201}},
                {"create": {"_index": "books", "_id": "2", "status": 409,
                            "error": {"type": "version_conflict_engine_exception",
                                      "reason": "[2]: version conflict, document already exists"}}},
            ],
        })

        assert response.items[0].op == "index"
        assert response.items[0].succeeded
        failed = response.error_items()
        assert [item.id for item in failed] == ["2"]
        assert failed[0].op == "create"
        assert failed[0].error.type == "version_conflict_engine_exception"

    def test_no_errors_flag(self):
        response = BulkResponse.model_validate({"took": 1, "errors": False, "items": [
            {"delete": {"_index": "books", "_id": "1", "status": 404, "result": "not_found"}},
        ]})

        assert response.error_items() == []
