from examgate.models.user import User
from examgate.models.test_result import TestResult

__all__ = ["User", "TestResult"]
