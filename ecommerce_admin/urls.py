"""
URL configuration for the e-commerce admin API.

- Order ViewSet routes (list, detail, lifecycle actions)
- Payment gateway callbacks and payment creation
- Identity endpoints and the identity provider webhook
- Admin interface
"""

from django.contrib import admin
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from orders.views import OrderViewSet

router = DefaultRouter()
router.register(r'orders', OrderViewSet, basename='order')

urlpatterns = [
    # Admin interface
    path('admin/', admin.site.urls),

    # API routes
    path('api/', include(router.urls)),
    path('api/', include('authentication.urls')),
    path('api/', include('payments.urls')),
]
