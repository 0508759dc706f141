"""
Toolkit - Upstream service adapters.

This app wraps the services that live outside the database:
- EmailService: Centralized email sending with templates
- MediaStore: Image uploads (profile pictures, group icons, message images)

Key components:
    - services/email.py: EmailService class
    - services/media.py: MediaStore class

Usage:
    from toolkit.services.email import EmailService
    from toolkit.services.media import MediaStore

Note:
    - This app has no models.
    - Both adapters raise core.exceptions.UpstreamServiceError on failure.
"""
