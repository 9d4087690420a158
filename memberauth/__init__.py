"""OTP-based member authentication service."""
