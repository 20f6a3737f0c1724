from django.urls import include, path

from . import views

urlpatterns = [
    path("escrows/", views.EscrowListCreateView.as_view(), name="escrow-list"),
    path("escrows/<str:pk>/", views.EscrowDetailView.as_view(), name="escrow-detail"),
    path("escrows/<str:pk>/start/", views.StartWorkView.as_view(), name="escrow-start"),
    path("escrows/<str:pk>/complete/", views.CompleteWorkView.as_view(), name="escrow-complete"),
    path("escrows/<str:pk>/approve/", views.ApproveWorkView.as_view(), name="escrow-approve"),
    path("escrows/<str:pk>/refund/", views.RequestRefundView.as_view(), name="escrow-refund"),
    path("escrows/<str:pk>/emergency-withdraw/", views.EmergencyWithdrawView.as_view(), name="escrow-emergency-withdraw"),
    path("escrows/<str:pk>/milestones/", include("milestones.urls")),
    path("platform/", views.PlatformConfigView.as_view(), name="platform-config"),
    path("platform/pause/", views.PauseView.as_view(), name="platform-pause"),
    path("platform/unpause/", views.UnpauseView.as_view(), name="platform-unpause"),
]
