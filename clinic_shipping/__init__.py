"""
Clinic Shipping Agent.
Shipping quotes, label generation and delivery tracking over Envioclick.
"""

__version__ = "1.0.0"
