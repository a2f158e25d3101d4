"""Async gRPC clients for the remote point-of-sale services.

The services exchange ``google.protobuf.Struct`` bodies (JSON-shaped
payloads), so calls go through generic unary-unary methods on a
``grpc.aio`` channel instead of generated stubs.
"""

import os
from typing import Any, Optional

import grpc
from google.protobuf import json_format
from google.protobuf.struct_pb2 import Struct

from .errors import GRPCError, TransportError

PRODUCT_FEED_LIST = "/pos.ProductFeed/ListProducts"
CUSTOMER_LIST = "/pos.CustomerDirectory/ListCustomers"
CUSTOMER_CREATE = "/pos.CustomerDirectory/CreateCustomer"
SALE_CREATE = "/pos.SaleService/CreateSale"
PAYMENT_CREATE = "/pos.SaleService/CreatePayment"
ADJUSTMENT_CREATE = "/pos.SaleService/CreateSalesAdjustment"

DEFAULT_ENDPOINT = "localhost:50051"


def _create_channel(endpoint: str) -> grpc.aio.Channel:
    """Create an async gRPC channel for the given endpoint.

    Supports both TCP (host:port) and Unix Domain Sockets (file paths).
    grpc uses unix:path for relative paths and unix:///path for absolute ones.
    """
    if endpoint.startswith("./"):
        return grpc.aio.insecure_channel(f"unix:{endpoint}")
    elif endpoint.startswith("/"):
        return grpc.aio.insecure_channel(f"unix://{endpoint}")
    else:
        return grpc.aio.insecure_channel(endpoint)


def to_struct(payload: dict) -> Struct:
    message = Struct()
    json_format.ParseDict(payload, message)
    return message


def from_struct(message: Struct) -> dict:
    return json_format.MessageToDict(message)


class ServiceClient:
    """Base client: one channel, Struct in, Struct out."""

    def __init__(self, channel: grpc.aio.Channel, timeout: Optional[float] = None):
        self._channel = channel
        self._timeout = timeout

    @classmethod
    def connect(cls, endpoint: str, timeout: Optional[float] = None):
        """Connect to a service at the given endpoint."""
        return cls(_create_channel(endpoint), timeout)

    @classmethod
    def from_env(cls, env_var: str, default: str = DEFAULT_ENDPOINT, timeout: Optional[float] = None):
        """Connect using an environment variable with fallback."""
        endpoint = os.environ.get(env_var, default)
        return cls.connect(endpoint, timeout)

    async def _call(self, method: str, payload: dict[str, Any]) -> dict:
        rpc = self._channel.unary_unary(
            method,
            request_serializer=Struct.SerializeToString,
            response_deserializer=Struct.FromString,
        )
        try:
            response = await rpc(to_struct(payload), timeout=self._timeout)
        except grpc.RpcError as e:
            raise GRPCError(e) from e
        except OSError as e:
            raise TransportError(e) from e
        return from_struct(response)

    async def close(self) -> None:
        """Close the underlying channel."""
        await self._channel.close()


class ProductFeedClient(ServiceClient):
    """Read-only stock feed."""

    async def list_products(self) -> list[dict]:
        response = await self._call(PRODUCT_FEED_LIST, {})
        return response.get("products", [])


class CustomerDirectoryClient(ServiceClient):
    async def list_customers(self) -> list[dict]:
        response = await self._call(CUSTOMER_LIST, {})
        return response.get("customers", [])

    async def create_customer(self, payload: dict) -> dict:
        return await self._call(CUSTOMER_CREATE, payload)


class SaleApiClient(ServiceClient):
    async def create_sale(self, payload: dict) -> dict:
        return await self._call(SALE_CREATE, payload)

    async def create_payment(self, sale_id: str, amount: int) -> dict:
        return await self._call(PAYMENT_CREATE, {"saleId": sale_id, "amount": amount})

    async def create_adjustment(self, payload: dict) -> dict:
        return await self._call(ADJUSTMENT_CREATE, payload)
