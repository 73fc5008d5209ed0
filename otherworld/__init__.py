"""Otherworldly Cultivation Simulator — LLM-narrated cultivation lives."""
