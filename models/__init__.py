from models.db_storage import DBStorage

# process-wide storage; create_app() points it at the configured database
storage = DBStorage()
