import django_filters
from django.db.models import Q

from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.models import Order


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    paymentStatus = django_filters.ChoiceFilter(  # noqa: N815
        field_name="payment_status", choices=PaymentStatus.choices
    )
    search = django_filters.CharFilter(method="filter_search")
    start_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__gte")
    end_date = django_filters.DateFilter(field_name="created_at", lookup_expr="date__lte")

    class Meta:
        model = Order
        fields = ["status", "paymentStatus", "search", "start_date", "end_date"]

    def filter_search(self, queryset, name, value):
        return queryset.filter(
            Q(order_number__icontains=value)
            | Q(customer_name__icontains=value)
            | Q(customer_phone__icontains=value)
            | Q(customer_email__icontains=value)
        )
