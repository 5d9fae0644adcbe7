"""Squad and duel matchmaking service for skill challenges."""
