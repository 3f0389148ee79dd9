from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from infrastructure.container import container
from marketplace.ordering.api.serializers import (
    CancelOrderRequestSerializer,
    ErrorResponseSerializer,
    OrderDetailSerializer,
    OrderListResponseSerializer,
    OrderSerializer,
    OrderSummarySerializer,
    PlaceOrderRequestSerializer,
    PlaceOrderResponseSerializer,
)
from marketplace.ordering.domain.errors import CheckoutError
from marketplace.ordering.domain.services import CheckoutService, OrderQueryService
from marketplace.services import ErrorCodes, ServiceResult, service_err

RESULT_ERROR_STATUS = {
    ErrorCodes.ORDER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCodes.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
}


def error_response(result: ServiceResult) -> Response:
    http_status = RESULT_ERROR_STATUS.get(result.error, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return Response(result.to_dict(), status=http_status)


def checkout_error_response(error: CheckoutError) -> Response:
    return Response(error.to_result().to_dict(), status=error.http_status)


def invalid_body_response(errors) -> Response:
    body = service_err(ErrorCodes.INVALID_INPUT, "Invalid request body").to_dict()
    body["error"]["fields"] = errors
    return Response(body, status=status.HTTP_400_BAD_REQUEST)


class OrderViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    def get_checkout_service(self) -> CheckoutService:
        return container.checkout_service()

    def get_query_service(self) -> OrderQueryService:
        return container.order_query_service()

    @extend_schema(
        operation_id="orders_list",
        summary="List user's orders",
        description="""
        **What it receives:**
        - Authentication token
        - Optional status filter (query param)
        - Pagination parameters (page, page_size)

        **What it returns:**
        - Paginated list of the user's orders, newest first
        - Total count and page information
        """,
        parameters=[
            OpenApiParameter(name="status", type=str, description="Filter by order status"),
            OpenApiParameter(name="page", type=int, description="Page number (default: 1)"),
            OpenApiParameter(name="page_size", type=int, description="Items per page (default: 20, max: 100)"),
        ],
        responses={
            200: OpenApiResponse(response=OrderListResponseSerializer, description="Orders retrieved successfully"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid filter or pagination"),
        },
        tags=["Marketplace - Orders"],
    )
    def list(self, request):
        service = self.get_query_service()

        status_filter = request.query_params.get("status") or None
        try:
            page = int(request.query_params.get("page", 1))
            page_size = int(request.query_params.get("page_size", 20))
        except ValueError:
            return error_response(service_err(ErrorCodes.INVALID_INPUT, "page and page_size must be integers"))

        result = service.list_orders(request.user.id, status_filter, page, page_size)

        if not result.ok:
            return error_response(result)

        response_data = dict(result.value)
        response_data["results"] = OrderSerializer(result.value["results"], many=True).data

        return Response(response_data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_retrieve",
        summary="Get order details",
        description="""
        **What it receives:**
        - `order_id` (integer in URL): Order to retrieve
        - Authentication token (must be order buyer)

        **What it returns:**
        - Complete order details including items, payment and shipment
        """,
        responses={
            200: OpenApiResponse(response=OrderDetailSerializer, description="Order retrieved successfully"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Orders"],
    )
    def retrieve(self, request, pk=None):
        result = self.get_query_service().get_order(request.user.id, int(pk))

        if not result.ok:
            return error_response(result)

        return Response(OrderDetailSerializer(result.value).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_create",
        summary="Place order",
        description="""
        **What it receives:**
        - `items` (list): `product_id` and `quantity` per line
        - `payment` (object): `method`, optional `provider` (defaults to method)
        - `shipment` (object): `courier`, optional `tracking_number` and `shipping_cost`
        - Authentication token

        **What it returns:**
        - Created order (status pending) with its items
        - Pending payment and shipment waiting for pickup
        - Stock is decremented for every item, or for none if anything fails
        """,
        request=PlaceOrderRequestSerializer,
        responses={
            201: OpenApiResponse(response=PlaceOrderResponseSerializer, description="Order placed successfully"),
            400: OpenApiResponse(
                response=ErrorResponseSerializer, description="Validation error or insufficient stock"
            ),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Product not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Stock locked by other checkouts"),
            500: OpenApiResponse(response=ErrorResponseSerializer, description="Internal server error"),
        },
        tags=["Marketplace - Orders"],
    )
    def create(self, request):
        serializer = PlaceOrderRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_body_response(serializer.errors)

        items, payment_input, shipment_input = serializer.to_checkout_arguments()

        try:
            result = self.get_checkout_service().place_order(request.user.id, items, payment_input, shipment_input)
        except CheckoutError as e:
            return checkout_error_response(e)

        return Response(PlaceOrderResponseSerializer(result).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="orders_cancel",
        summary="Cancel order",
        description="""
        **What it receives:**
        - `order_id` (integer in URL): Order to cancel
        - `reason` (string, optional): Cancellation reason
        - Authentication token (must be order buyer)

        **What it returns:**
        - Updated order with canceled status
        - Ordered quantities are returned to stock, pending payment is canceled
        """,
        request=CancelOrderRequestSerializer,
        responses={
            200: OpenApiResponse(response=OrderDetailSerializer, description="Order canceled successfully"),
            400: OpenApiResponse(
                response=ErrorResponseSerializer, description="Order already canceled or already shipped"
            ),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Rows locked, retry"),
        },
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        serializer = CancelOrderRequestSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_body_response(serializer.errors)

        reason = serializer.validated_data.get("reason", "")

        try:
            order = self.get_checkout_service().cancel_order(request.user.id, int(pk), reason)
        except CheckoutError as e:
            return checkout_error_response(e)

        return Response(OrderDetailSerializer(order).data, status=status.HTTP_200_OK)

    @extend_schema(
        operation_id="orders_summary",
        summary="Get order summary",
        description="""
        **What it receives:**
        - `order_id` (integer in URL)
        - Authentication token (must be order buyer)

        **What it returns:**
        - Item count, subtotal, shipping cost and total
        - Payment method/status and shipment courier/tracking/status
        """,
        responses={
            200: OpenApiResponse(response=OrderSummarySerializer, description="Summary retrieved successfully"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Order not found"),
        },
        tags=["Marketplace - Orders"],
    )
    @action(detail=True, methods=["get"])
    def summary(self, request, pk=None):
        result = self.get_query_service().get_order_summary(request.user.id, int(pk))

        if not result.ok:
            return error_response(result)

        return Response(OrderSummarySerializer(result.value).data, status=status.HTTP_200_OK)
