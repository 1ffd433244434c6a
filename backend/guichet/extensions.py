# Overview: Shared extension instances, bound to the app in create_app().

from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate

# Till, session, alert and settings tables all hang off this metadata.
db = SQLAlchemy()
migrate = Migrate()
