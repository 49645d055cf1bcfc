"""Request-scoped access to the collaborators built in the app lifespan."""

from fastapi import Request

from bondly.advice import AdviceGenerator
from bondly.stream import EventStream


def get_event_stream(request: Request) -> EventStream:
    return request.app.state.event_stream


def get_advice_generator(request: Request) -> AdviceGenerator:
    return request.app.state.advice_generator
