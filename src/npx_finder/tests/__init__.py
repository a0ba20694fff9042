"""
NPX Finder Tests

Registry traffic is simulated with httpx.MockTransport (see fakes.py), so
no test touches the network.
"""
