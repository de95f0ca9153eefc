# sales/exceptions.py


class SaleError(Exception):
    pass


class InsufficientPayment(SaleError):
    def __init__(self, paid_amount, total_amount):
        self.paid_amount = paid_amount
        self.total_amount = total_amount
        super().__init__(
            f"Paid {paid_amount} of {total_amount}; at least 50% is required before granting access"
        )


class InvalidPayment(SaleError):
    pass
