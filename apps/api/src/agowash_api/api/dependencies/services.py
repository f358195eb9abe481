from fastapi import Request, WebSocket

from agowash_api.services.container import ServiceContainer


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_websocket_services(websocket: WebSocket) -> ServiceContainer:
    return websocket.app.state.services
