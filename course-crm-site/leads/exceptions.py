# leads/exceptions.py


class LeadError(Exception):
    pass


class InvalidTransition(LeadError):
    def __init__(self, previous_status, new_status):
        self.previous_status = previous_status
        self.new_status = new_status
        super().__init__(f"Invalid lead transition: {previous_status} -> {new_status}")


class SaleRequired(LeadError):
    """Moving a lead into ``sale`` without an existing sale or sale data."""
