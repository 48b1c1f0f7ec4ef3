"""Microservice registration (msreg).

Small service that:
 - self-registers with a Kong API gateway at startup (upstream, API, target)
 - withdraws its own target at shutdown (weight 0, no deletion)
 - orchestrates user account creation across the user and user-profile services

The gateway is the only source of truth; nothing is persisted locally.
"""
