from django.urls import path

from apps.matching import views

urlpatterns = [
    path("match/", views.MatchListView.as_view(), name="match-list"),
    path("match/status/<int:user_id>/", views.MatchStatusView.as_view(), name="match-status"),
    path("match/like/<int:user_id>/", views.MatchLikeView.as_view(), name="match-like"),
    path("match/unlike/<int:user_id>/", views.MatchUnlikeView.as_view(), name="match-unlike"),
]
