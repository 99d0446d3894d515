from django.urls import re_path

from .views import template_config_view
from .views import voice_responses_view

app_name = "crt"
urlpatterns = [
    re_path(r"^api/voice-responses/?$", view=voice_responses_view, name="voice_responses"),
    re_path(
        r"^api/templates/(?P<template_id>[-\w]+)/?$",
        view=template_config_view,
        name="template_config",
    ),
]
