"""
URL configuration for cart app.
"""

from django.urls import path
from .views import CartViewSet

app_name = 'cart'

urlpatterns = [
    # GET /api/cart/tables/{table_id}/ - Retrieve the table's cart
    path('tables/<str:table_id>/', CartViewSet.as_view({'get': 'retrieve'}), name='cart-detail'),

    # POST /api/cart/tables/{table_id}/add-item/ - Add item to cart
    path('tables/<str:table_id>/add-item/', CartViewSet.as_view({'post': 'add_item'}), name='cart-add-item'),

    # PATCH /api/cart/tables/{table_id}/update-item/{line_id}/ - Update line quantity
    path(
        'tables/<str:table_id>/update-item/<str:line_id>/',
        CartViewSet.as_view({'patch': 'update_item'}),
        name='cart-update-item',
    ),

    # DELETE /api/cart/tables/{table_id}/remove-item/{line_id}/ - Remove line from cart
    path(
        'tables/<str:table_id>/remove-item/<str:line_id>/',
        CartViewSet.as_view({'delete': 'remove_item'}),
        name='cart-remove-item',
    ),

    # DELETE /api/cart/tables/{table_id}/clear/ - Clear all items
    path('tables/<str:table_id>/clear/', CartViewSet.as_view({'delete': 'clear'}), name='cart-clear'),
]
