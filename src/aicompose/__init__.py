"""aicompose: LLM-assisted content creation dialog with dialog history."""
