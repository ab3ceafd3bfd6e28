import json
from test.base import AwsBaseTest
from typing import Any, Callable, Dict, Optional, Type

import boto3
from aibs_informatics_core.env import ENV_BASE_KEY
from aibs_informatics_core.utils.json import JSON, JSONObject
from aws_lambda_powertools.utilities.typing import LambdaContext
from aws_lambda_powertools.utilities.typing.lambda_client_context import LambdaClientContext
from aws_lambda_powertools.utilities.typing.lambda_cognito_identity import LambdaCognitoIdentity
from moto import mock_aws

from velo_altitude_lambda.common.config import (
    CACHE_ENABLED_KEY,
    DATABASE_NAME_KEY,
    DATABASE_URI_KEY,
    VELO_ENV_KEY,
    ServiceConfig,
)
from velo_altitude_lambda.common.handler import LambdaEvent
from velo_altitude_lambda.store.cache import CACHE_COLLECTION, RESOURCE_ID_KEY
from velo_altitude_lambda.store.connection import reset_connection
from velo_altitude_lambda.store.documents import ID_KEY, to_store_item
from velo_altitude_lambda.store.rate_limit import RATE_LIMIT_COLLECTION

DYNAMODB_ENDPOINT = "https://dynamodb.us-west-2.amazonaws.com"
DATABASE_NAME = "velo-test"
COLLECTIONS = (
    "cols",
    "nutrition",
    "challenges",
    "favorites",
    CACHE_COLLECTION,
    RATE_LIMIT_COLLECTION,
)


class MockLambdaContext(LambdaContext):
    def __init__(self, function_name: str):
        self._function_name = function_name
        self._function_version = "1.0"
        self._invoked_function_arn = (
            f"arn:aws:lambda:us-west-2:123456789012:function:{function_name}"
        )
        self._memory_limit_in_mb = 512
        self._aws_request_id = "12345678-1234-1234-1234-123456789012"
        self._log_group_name = f"/test/{function_name}"
        self._log_stream_name = f"{self.aws_request_id}"
        self._identity = LambdaCognitoIdentity()
        self._client_context = LambdaClientContext()


LambdaHandlerType = Callable[[LambdaEvent, LambdaContext], Optional[JSON]]


def api_event(
    method: str,
    path: str,
    query: Optional[Dict[str, str]] = None,
    body: Optional[Any] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONObject:
    """API Gateway REST proxy event for a request."""
    return {
        "httpMethod": method,
        "path": path,
        "queryStringParameters": query,
        "headers": headers or {},
        "body": body if body is None or isinstance(body, str) else json.dumps(body),
        "isBase64Encoded": False,
        "requestContext": {"requestId": "c6af9ac6-7b61-11e6-9a41-93e8deadbeef"},
    }


class LambdaHandlerTestCase(AwsBaseTest):
    def setUp(self) -> None:
        super().setUp()
        self.set_env_vars((ENV_BASE_KEY, self.env_base))
        self.set_metrics_namespace()

    @property
    def context(self) -> LambdaContext:
        return MockLambdaContext(self.__class__.__name__)

    def assertHandles(
        self,
        handler: LambdaHandlerType,
        event: LambdaEvent,
        response: Optional[JSON] = None,
        context: Optional[LambdaContext] = None,
    ):
        actual = handler(event, context or self.context)
        if response is None:
            self.assertIsNone(actual)
        elif isinstance(response, dict) and isinstance(actual, dict):
            self.assertDictEqual(response, actual)
        else:
            self.assertEqual(response, actual)

    def assertLambdaRaises(
        self,
        handler: LambdaHandlerType,
        event: LambdaEvent,
        exception: Type[Exception],
        context: Optional[LambdaContext] = None,
    ):
        with self.assertRaises(exception):
            handler(event, context or self.context)


class DocumentStoreTestCase(LambdaHandlerTestCase):
    """Runs against mocked DynamoDB tables for every collection."""

    def setUp(self) -> None:
        super().setUp()
        self.set_aws_credentials()
        self.set_env_vars(
            (DATABASE_URI_KEY, DYNAMODB_ENDPOINT),
            (DATABASE_NAME_KEY, DATABASE_NAME),
            (VELO_ENV_KEY, "production"),
            (CACHE_ENABLED_KEY, "true"),
        )
        self.mock_aws = mock_aws()
        self.mock_aws.start()
        self.addCleanup(self.mock_aws.stop)
        reset_connection()
        self.addCleanup(reset_connection)

        self.dynamodb = boto3.resource("dynamodb", region_name=self.DEFAULT_REGION)
        for collection in COLLECTIONS:
            self.create_table(collection)

    @property
    def config(self) -> ServiceConfig:
        return ServiceConfig.from_env()

    def create_table(self, collection: str):
        key_name = RESOURCE_ID_KEY if collection == CACHE_COLLECTION else ID_KEY
        return self.dynamodb.create_table(
            TableName=self.config.table_name(collection),
            KeySchema=[{"AttributeName": key_name, "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": key_name, "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )

    def get_table(self, collection: str):
        return self.dynamodb.Table(self.config.table_name(collection))

    def put_documents(self, collection: str, *documents: JSONObject):
        table = self.get_table(collection)
        for document in documents:
            table.put_item(Item=to_store_item(document))

    def get_cache_item(self, resource_id: str) -> Optional[Dict[str, Any]]:
        response = self.get_table(CACHE_COLLECTION).get_item(Key={RESOURCE_ID_KEY: resource_id})
        return response.get("Item")

    def assertResponse(
        self, response: JSONObject, status_code: int, body: Optional[JSON] = None
    ) -> JSON:
        """Assert status (and body, if given) of an API response and return the parsed body."""
        self.assertEqual(response["statusCode"], status_code, response.get("body"))
        parsed = json.loads(response["body"]) if response["body"] else None
        if body is not None:
            self.assertEqual(parsed, body)
        return parsed
