import re

# Display name: letters, digits, spaces, apostrophes, dots and dashes
# Example: "Jane O'Neil"
DISPLAY_NAME_PATTERN = re.compile(r"^[\w][\w .'\-]{0,99}$")

# Client-chosen device identifier
# Example: "iphone-15.a1b2c3"
DEVICE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-.:]{1,128}$")

# Validates a strong password with at least one lowercase letter, one uppercase letter,
# one digit, one special character, and a minimum length of 8 characters
# Example: "Passw0rd!"
STRONG_PASSWORD_VALIDATOR = re.compile(
    r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$"
)

# Validates a JWT token format (three base64url-encoded segments separated by periods)
JWT_VALIDATOR = re.compile(r"^[A-Za-z0-9-_=]+\.[A-Za-z0-9-_=]+\.?[A-Za-z0-9-_.+/=]*$")
