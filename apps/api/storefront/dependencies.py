from fastapi.requests import HTTPConnection

from storefront.services.tracking_notifier import TrackingNotifier


def get_tracking_notifier(connection: HTTPConnection) -> TrackingNotifier:
    return connection.app.state.tracking_notifier
