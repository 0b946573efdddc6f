"""dobi_fleet - simulated EV-charger wallet fleet service."""

__version__ = "0.1.0"
