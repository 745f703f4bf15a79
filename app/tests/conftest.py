from app.tests.fixtures_clients import *  # noqa
from app.tests.fixtures_db import *  # noqa
