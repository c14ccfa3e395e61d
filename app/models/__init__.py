from .installation import Installation
from .user import User, UserInstallation
from .integration import Integration
from .order import Order, OrderItem

# This ensures all models are registered with SQLAlchemy
__all__ = [
    'Installation',
    'User',
    'UserInstallation',
    'Integration',
    'Order',
    'OrderItem',
]
