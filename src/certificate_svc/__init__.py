"""
Parish Certificates - certificate request approval service

Members request certificates (baptism, marriage, recommendation,
membership); each request passes three sequential approval gates:
- Zone Leader
- Pastor
- Parish Pastor (final)
A rejection at any gate ends the request.
"""

__version__ = "0.1.0"
