"""Voice-driven control surface: capture, decode, converse, narrate."""
