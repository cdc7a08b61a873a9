from django.urls import path

from . import views

urlpatterns = [
    path('momo/ipn/', views.momo_ipn, name='momo-ipn'),
    path('momo/payment/', views.momo_create_payment, name='momo-payment'),
    path('vnpay/ipn/', views.vnpay_ipn, name='vnpay-ipn'),
    path('webhooks/stripe/', views.stripe_webhook, name='stripe-webhook'),
]
