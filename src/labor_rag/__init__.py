"""Labor-law and employment-contract question answering backend."""
