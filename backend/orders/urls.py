from django.urls import path
from . import views

app_name = "orders"

urlpatterns = [
    path("", views.order_list, name="order_list"),
    path("checkout/", views.checkout, name="checkout"),
    path("tables/<str:table_id>/open/", views.table_open_order, name="table_open_order"),
    path("<uuid:order_id>/", views.order_detail, name="order_detail"),

    # Item lifecycle
    path("<uuid:order_id>/items/accept/", views.accept_items, name="accept_items"),
    path("<uuid:order_id>/items/reject/", views.reject_items, name="reject_items"),
    path("<uuid:order_id>/items/serve/", views.serve_items, name="serve_items"),
    path("<uuid:order_id>/items/status/", views.update_items_status, name="update_items_status"),

    # Order lifecycle
    path("<uuid:order_id>/cancel/", views.cancel_order, name="cancel_order"),
    path("<uuid:order_id>/payment/", views.update_payment_status, name="update_payment_status"),
]
