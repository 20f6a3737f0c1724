from django.urls import path

from . import views

urlpatterns = [
    path(
        'escrows/<str:pk>/dispute/',
        views.EscrowDisputeAPIView.as_view(),
        name='escrow-dispute',
    ),
    path(
        'escrows/<str:pk>/dispute/resolve/',
        views.ResolveDisputeAPIView.as_view(),
        name='escrow-dispute-resolve',
    ),
    path(
        'disputes/',
        views.ListDisputesAPIView.as_view(),
        name='disputes-list',
    ),
]
