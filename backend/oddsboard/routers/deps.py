from fastapi import Request

from oddsboard.wiring import Services


def get_services(request: Request) -> Services:
    """Services built in the application lifespan."""
    return request.app.state.services
