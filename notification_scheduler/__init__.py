"""Django project package for the notification scheduling engine."""
