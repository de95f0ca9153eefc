# halloffame/exceptions.py


class WebhookError(Exception):
    pass


class UnknownEvent(WebhookError):
    def __init__(self, event_type):
        self.event_type = event_type
        super().__init__("Invalid event type")


class InvalidPayload(WebhookError):
    pass
