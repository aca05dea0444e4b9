from redline.settings import *

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

# Never talk to the real API from tests
OPENAI_API_KEY = 'test-fallback-key'
OPENAI_API_BASE = 'https://api.openai.test/v1/'

# Never pick up a developer's remembered key
REVIEW_CREDENTIAL_FILE = '/nonexistent/redline-test/api_key'
