"""Order DRF serializers (camelCase keys).

Input serializers validate shape and map camelCase keys onto the snake
case names the DTOs expect via ``source``.  Business rules live in the
Service Layer.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.models import Order, OrderItem, OrderTimelineEntry

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CustomerInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    phone = serializers.CharField(max_length=20)


class ShippingAddressInputSerializer(serializers.Serializer):
    fullName = serializers.CharField(source="full_name", max_length=150)  # noqa: N815
    phone = serializers.CharField(max_length=20)
    region = serializers.CharField(max_length=50)
    city = serializers.CharField(max_length=100)
    area = serializers.CharField(max_length=100, required=False, allow_blank=True)
    address = serializers.CharField(max_length=500)
    landmark = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class VariantInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=50)
    value = serializers.CharField(max_length=100)


class CreateOrderItemSerializer(serializers.Serializer):
    productId = serializers.UUIDField(source="product_id")  # noqa: N815
    quantity = serializers.IntegerField(min_value=1)
    variant = VariantInputSerializer(required=False, allow_null=True)


class CreateOrderSerializer(serializers.Serializer):
    customer = CustomerInputSerializer()
    shippingAddress = ShippingAddressInputSerializer(source="shipping_address")  # noqa: N815
    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    paymentMethod = serializers.ChoiceField(  # noqa: N815
        source="payment_method", choices=PaymentMethod.choices
    )
    discountCode = serializers.CharField(  # noqa: N815
        source="discount_code", max_length=50, required=False, allow_blank=True
    )


class UpdateStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=OrderStatus.choices,
        error_messages={"invalid_choice": "Invalid status"},
    )
    message = serializers.CharField(max_length=500, required=False, allow_blank=True)
    courierName = serializers.CharField(  # noqa: N815
        source="courier_name", max_length=100, required=False, allow_blank=True
    )
    trackingNumber = serializers.CharField(  # noqa: N815
        source="tracking_number", max_length=100, required=False, allow_blank=True
    )
    trackingUrl = serializers.URLField(  # noqa: N815
        source="tracking_url", required=False, allow_blank=True
    )


class VerifyPaymentSerializer(serializers.Serializer):
    transactionId = serializers.CharField(  # noqa: N815
        source="transaction_id", max_length=100, required=False, allow_blank=True
    )
    senderNumber = serializers.CharField(  # noqa: N815
        source="sender_number", max_length=20, required=False, allow_blank=True
    )
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True
    )


class ReturnRequestSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=1000)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    productId = serializers.UUIDField(source="product_id", read_only=True)  # noqa: N815
    price = serializers.DecimalField(
        source="unit_price", max_digits=12, decimal_places=2, read_only=True
    )
    variant = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = [
            "productId",
            "title",
            "slug",
            "image",
            "price",
            "quantity",
            "variant",
            "subtotal",
        ]
        read_only_fields = fields

    def get_variant(self, obj: OrderItem) -> dict | None:
        if not obj.variant_name:
            return None
        return {"name": obj.variant_name, "value": obj.variant_value}


class TimelineEntrySerializer(serializers.ModelSerializer):
    timestamp = serializers.DateTimeField(source="created_at", read_only=True)
    updatedBy = serializers.SerializerMethodField()  # noqa: N815

    class Meta:
        model = OrderTimelineEntry
        fields = ["status", "message", "timestamp", "updatedBy"]
        read_only_fields = fields

    def get_updatedBy(self, obj: OrderTimelineEntry) -> str | None:  # noqa: N802
        return obj.actor.name if obj.actor_id and obj.actor else None


class OrderSerializer(serializers.ModelSerializer):
    """Full order view for owners and admins."""

    orderNumber = serializers.CharField(source="order_number", read_only=True)  # noqa: N815
    customer = serializers.SerializerMethodField()
    shippingAddress = serializers.SerializerMethodField()  # noqa: N815
    items = OrderItemSerializer(many=True, read_only=True)
    shippingCost = serializers.DecimalField(  # noqa: N815
        source="shipping_cost", max_digits=12, decimal_places=2, read_only=True
    )
    discountCode = serializers.CharField(source="discount_code", read_only=True)  # noqa: N815
    paymentMethod = serializers.CharField(source="payment_method", read_only=True)  # noqa: N815
    paymentStatus = serializers.CharField(source="payment_status", read_only=True)  # noqa: N815
    paymentDetails = serializers.SerializerMethodField()  # noqa: N815
    timeline = TimelineEntrySerializer(many=True, read_only=True)
    courier = serializers.SerializerMethodField()
    estimatedDelivery = serializers.DateTimeField(  # noqa: N815
        source="estimated_delivery", read_only=True
    )
    deliveredAt = serializers.DateTimeField(source="delivered_at", read_only=True)  # noqa: N815
    returnRequest = serializers.SerializerMethodField()  # noqa: N815
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)  # noqa: N815

    class Meta:
        model = Order
        fields = [
            "id",
            "orderNumber",
            "status",
            "customer",
            "shippingAddress",
            "items",
            "subtotal",
            "shippingCost",
            "discount",
            "discountCode",
            "total",
            "paymentMethod",
            "paymentStatus",
            "paymentDetails",
            "timeline",
            "courier",
            "estimatedDelivery",
            "deliveredAt",
            "returnRequest",
            "createdAt",
        ]
        read_only_fields = fields

    def get_customer(self, obj: Order) -> dict:
        return {
            "name": obj.customer_name,
            "email": obj.customer_email,
            "phone": obj.customer_phone,
        }

    def get_shippingAddress(self, obj: Order) -> dict:  # noqa: N802
        return {
            "fullName": obj.shipping_full_name,
            "phone": obj.shipping_phone,
            "region": obj.shipping_region,
            "city": obj.shipping_city,
            "area": obj.shipping_area,
            "address": obj.shipping_address,
            "landmark": obj.shipping_landmark,
            "notes": obj.shipping_notes,
        }

    def get_paymentDetails(self, obj: Order) -> dict:  # noqa: N802
        return {
            "transactionId": obj.payment_transaction_id,
            "senderNumber": obj.payment_sender_number,
            "amount": str(obj.payment_amount) if obj.payment_amount is not None else None,
            "verifiedAt": obj.payment_verified_at,
        }

    def get_courier(self, obj: Order) -> dict:
        return {
            "name": obj.courier_name,
            "trackingNumber": obj.courier_tracking_number,
            "trackingUrl": obj.courier_tracking_url,
        }

    def get_returnRequest(self, obj: Order) -> dict | None:  # noqa: N802
        if not obj.return_requested:
            return None
        return {
            "reason": obj.return_reason,
            "status": obj.return_status,
            "requestedAt": obj.return_requested_at,
            "refundAmount": (
                str(obj.return_refund_amount)
                if obj.return_refund_amount is not None
                else None
            ),
            "processedAt": obj.return_processed_at,
        }


class TrackingSerializer(serializers.ModelSerializer):
    """Public tracking view: no contact details, payment or address lines."""

    orderNumber = serializers.CharField(source="order_number", read_only=True)  # noqa: N815
    timeline = TimelineEntrySerializer(many=True, read_only=True)
    estimatedDelivery = serializers.DateTimeField(  # noqa: N815
        source="estimated_delivery", read_only=True
    )
    customerName = serializers.CharField(source="customer_name", read_only=True)  # noqa: N815
    region = serializers.CharField(source="shipping_region", read_only=True)
    courier = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "orderNumber",
            "status",
            "timeline",
            "estimatedDelivery",
            "customerName",
            "region",
            "courier",
        ]
        read_only_fields = fields

    def get_courier(self, obj: Order) -> dict:
        return {
            "name": obj.courier_name,
            "trackingNumber": obj.courier_tracking_number,
            "trackingUrl": obj.courier_tracking_url,
        }
