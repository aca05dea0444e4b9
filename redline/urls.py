"""
URL configuration for the Redline project.
"""
from django.urls import include, path

urlpatterns = [
    path('', include('review.urls')),
]
