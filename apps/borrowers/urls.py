"""
Borrower URL configuration.
"""

from django.urls import path

from apps.borrowers.views import RegisterBorrowerView

urlpatterns = [
    path('register', RegisterBorrowerView.as_view(), name='register'),
]
