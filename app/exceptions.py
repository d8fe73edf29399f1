"""
Custom exceptions for the application
"""


class BuyerProfileNotFoundError(Exception):
    """Raised when a buyer profile referenced by a request does not exist"""

    def __init__(self, buyer_profile_id: str):
        self.buyer_profile_id = buyer_profile_id
        super().__init__(f"Buyer profile {buyer_profile_id} not found")
