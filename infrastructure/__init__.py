"""
Infrastructure Package
======================

Wiring between the ordering services and their persistence.

Modules:
    - container: service locator that builds repositories and services

This package enables:
    - Easy testing with mock repositories
    - Swapping repository implementations without touching the services
"""
