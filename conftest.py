import django
from django.conf import settings


def pytest_configure():
    settings.configure(
        DEBUG=False,
        SECRET_KEY='fsakit-tests',
        DATABASES={
            'default': {
                'ENGINE': 'django.db.backends.sqlite3',
                'NAME': ':memory:',
            }
        },
        INSTALLED_APPS=[
            'django.contrib.contenttypes',
            'fsakit',
        ],
        ROOT_URLCONF='fsakit.urls',
        ALLOWED_HOSTS=['testserver', 'localhost'],
        USE_TZ=True,
    )
    django.setup()
