"""
Custom user manager.

Users are created with an email, a username and a full name. The email is
the USERNAME_FIELD for Django's own machinery (admin, createsuperuser);
the login endpoint additionally accepts the username.

Security:
    - Passwords are automatically hashed via set_password()
    - Email addresses are normalized (lowercase domain)
"""

from django.contrib.auth.models import BaseUserManager
from django.db.models import Q


class UserManager(BaseUserManager):
    """
    Custom manager for User model.

    Usage:
        user = User.objects.create_user(
            email="ada@example.com",
            username="ada",
            full_name="Ada Lovelace",
            password="secret1",
        )
    """

    def create_user(self, email, password=None, **extra_fields):
        """
        Create and save a regular user.

        Raises:
            ValueError: If email or username is not provided
        """
        if not email:
            raise ValueError("The Email field must be set")
        if not extra_fields.get("username"):
            raise ValueError("The Username field must be set")

        email = self.normalize_email(email)

        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)

        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        """
        Create and save a superuser.

        Raises:
            ValueError: If is_staff or is_superuser is not True
        """
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, password, **extra_fields)

    def get_by_login_id(self, login_id: str):
        """
        Look up a user by email or username.

        Returns:
            User or None
        """
        return self.filter(Q(email__iexact=login_id) | Q(username=login_id)).first()
