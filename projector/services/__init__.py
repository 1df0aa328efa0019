"""Services for atomic payload projection."""
