"""Version information for strapi-transfer."""

__version__ = "0.3.0"
