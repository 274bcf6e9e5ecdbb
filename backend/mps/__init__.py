"""Mathematics Proctoring System session service."""
