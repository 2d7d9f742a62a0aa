"""
Services module - validation, agent tools, goal persistence and streaming.
"""
