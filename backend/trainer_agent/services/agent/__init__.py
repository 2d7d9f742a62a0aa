"""
Agent module - server-side pieces invoked by the agent's tool-calling loop.
"""
