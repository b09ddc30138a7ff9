"""ASGI entrypoint for the dish recommender API."""

from dish_recommender.api.app import create_app
from dish_recommender.containers import build_container

app = create_app(build_container())
