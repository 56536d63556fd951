# Raise exceptions on recoverable problems in font dictionaries
# instead of logging them and carrying on.
STRICT = False
