"""
URL configuration for payments app.

Defines API endpoints for:
- Starting a payment through a port
- Gateway callbacks
- Transactions (read-only, admin)
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import PaymentCallbackView, PaymentRequestView, TransactionViewSet


router = DefaultRouter()
router.register(r'transactions', TransactionViewSet, basename='transaction')

urlpatterns = [
    path('', include(router.urls)),
    path(
        'requests/',
        PaymentRequestView.as_view(),
        name='payment-request'
    ),
    path(
        'callback/',
        PaymentCallbackView.as_view(),
        name='payment-callback'
    ),
]
