from django.urls import path

from . import views

urlpatterns = [
    path("", views.MilestoneListView.as_view(), name="milestone-list"),
    path("<int:index>/", views.MilestoneDetailView.as_view(), name="milestone-detail"),
    path("<int:index>/complete/", views.MilestoneCompleteView.as_view(), name="milestone-complete"),
    path("<int:index>/approve/", views.MilestoneApproveView.as_view(), name="milestone-approve"),
]
