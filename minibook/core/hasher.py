import bcrypt


class PasswordHelper:
    def __init__(self, rounds: int = 10):
        self.rounds = rounds

    def hash_password(self, password: str) -> str:
        """Hash a password using bcrypt."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
        return hashed.decode("utf-8")

    @staticmethod
    def check_password(password: str, hashed_password: str) -> bool:
        """Check if a password matches the hashed version."""
        try:
            return bcrypt.checkpw(
                password.encode("utf-8"), hashed_password.encode("utf-8")
            )
        except ValueError:
            # Malformed hash or a password past bcrypt's 72 byte limit.
            return False
