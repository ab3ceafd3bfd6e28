from decimal import Decimal
from test.velo_altitude_lambda.base import DocumentStoreTestCase
from unittest import mock

from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError, EndpointConnectionError
from pytest import mark, param

from velo_altitude_lambda.common.exceptions import UpstreamError, UpstreamUnavailableError
from velo_altitude_lambda.store.connection import get_connection
from velo_altitude_lambda.store.documents import (
    DocumentCollection,
    from_store_item,
    to_store_item,
    translate_store_error,
)


@mark.parametrize(
    "value, expected",
    [
        param(Decimal("1139"), 1139, id="integral decimal"),
        param(Decimal("7.5"), 7.5, id="fractional decimal"),
        param({"a": [Decimal("1"), {"b": Decimal("2.25")}]}, {"a": [1, {"b": 2.25}]}, id="nested"),
        param({"vosges", "alsace"}, ["alsace", "vosges"], id="string set"),
        param("Col de la Schlucht", "Col de la Schlucht", id="string"),
        param(None, None, id="null"),
    ],
)
def test__from_store_item(value, expected):
    assert from_store_item(value) == expected


def test__to_store_item__converts_floats_to_decimals():
    item = to_store_item({"id": "col-1", "avgGradient": 4.8, "elevation": 1139})
    assert item == {"id": "col-1", "avgGradient": Decimal("4.8"), "elevation": 1139}


def test__translate_store_error__connection_errors_are_unavailable():
    error = EndpointConnectionError(endpoint_url="http://localhost:8000")
    assert isinstance(translate_store_error(error, "connecting"), UpstreamUnavailableError)


def test__translate_store_error__other_errors_are_upstream():
    error = ClientError({"Error": {"Code": "ValidationException", "Message": "bad"}}, "GetItem")
    translated = translate_store_error(error, "reading cols/col-1")
    assert type(translated) is UpstreamError
    assert "reading cols/col-1" in str(translated)


class DocumentCollectionTests(DocumentStoreTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.cols = get_connection().collection("cols")

    def test__get__returns_plain_document(self):
        self.put_documents(
            "cols", {"id": "col-123", "name": "Col de la Schlucht", "elevation": 1139}
        )
        self.assertEqual(
            self.cols.get("col-123"),
            {"id": "col-123", "name": "Col de la Schlucht", "elevation": 1139},
        )

    def test__get__missing_document_is_none(self):
        self.assertIsNone(self.cols.get("col-404"))

    def test__put_then_delete(self):
        self.cols.put({"id": "col-1", "name": "Grand Ballon", "avgGradient": 6.1})
        self.assertEqual(self.cols.get("col-1")["avgGradient"], 6.1)
        self.cols.delete("col-1")
        self.assertIsNone(self.cols.get("col-1"))

    def test__scan__returns_all_documents(self):
        self.put_documents(
            "cols",
            {"id": "col-1", "name": "Grand Ballon", "region": "vosges"},
            {"id": "col-2", "name": "Col du Galibier", "region": "alpes"},
        )
        self.assertEqual(
            sorted(d["id"] for d in self.cols.scan()),
            ["col-1", "col-2"],
        )

    def test__scan__applies_filter_expression(self):
        self.put_documents(
            "cols",
            {"id": "col-1", "name": "Grand Ballon", "region": "vosges"},
            {"id": "col-2", "name": "Col du Galibier", "region": "alpes"},
        )
        documents = self.cols.scan(Attr("region").eq("alpes"))
        self.assertEqual([d["id"] for d in documents], ["col-2"])

    def test__scan__follows_pagination(self):
        table = mock.MagicMock()
        table.scan.side_effect = [
            {"Items": [{"id": "a"}], "LastEvaluatedKey": {"id": "a"}},
            {"Items": [{"id": "b"}]},
        ]
        collection = DocumentCollection(name="cols", table=table)
        self.assertEqual(collection.scan(), [{"id": "a"}, {"id": "b"}])
        table.scan.assert_called_with(ExclusiveStartKey={"id": "a"})

    def test__get__missing_table_raises_upstream_error(self):
        collection = get_connection().collection("routes")
        with self.assertRaises(UpstreamError):
            collection.get("route-1")
