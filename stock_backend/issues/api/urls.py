# issues/api/urls.py

from django.urls import path

from issues.api.views import IssueListCreateView, IssuePostView

urlpatterns = [
    path("", IssueListCreateView.as_view(), name="issues"),
    path("<uuid:issue_id>/post/", IssuePostView.as_view(), name="issue-post"),
]
