from cryptodp.health.app import create_health_app

__all__ = ["create_health_app"]
