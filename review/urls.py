"""
URL configuration for the review app.
"""
from django.urls import path
from . import views

app_name = 'review'

urlpatterns = [
    # Streaming relay (path kept for existing clients)
    path('api/translate', views.review_stream, name='stream'),
]
