"""
GitHub to Discord Pull Request Relay

A small webhook service that verifies GitHub deliveries and announces
newly opened pull requests in a Discord channel.
"""

__version__ = "1.0.0"
__author__ = "gitbot maintainers"
