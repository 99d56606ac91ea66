"""Domain types shared by the agent loop and the stream encoders."""
