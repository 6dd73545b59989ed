"""Factory helpers for test data generation.

Model factories create rows through the ORM; record factories build the
pydantic records used by in-memory repositories.
"""

from faker import Faker

fake = Faker()
