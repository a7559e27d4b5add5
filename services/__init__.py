"""Business services for the raffle purchase pipeline."""
