"""External services: AWS SES email, Google sign-in and Sentry error tracking."""
