# Setup module for the calendar API: database, schema and the initial admin user
import logging
import utils
import database

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ["users", "events", "tags", "event_tags"]

SCHEMA = [
    # Users authenticate with hashed API keys
    """
    CREATE TABLE IF NOT EXISTS users (
        id                   CHAR(8)      PRIMARY KEY,
        api_key_hash         CHAR(64)     NOT NULL,
        role                 ENUM('user','admin') NOT NULL DEFAULT 'user',
        created_at           DATETIME     NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at           DATETIME     NOT NULL DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP
    )
    """,
    # Events: plain events, recurring masters and overrides of one occurrence
    """
    CREATE TABLE IF NOT EXISTS events (
        id                       BIGINT       AUTO_INCREMENT PRIMARY KEY,
        user_id                  CHAR(8)      NOT NULL,
        title                    VARCHAR(255) NOT NULL,
        description              TEXT         NULL,
        start_datetime           DATETIME(6)  NOT NULL,
        end_datetime             DATETIME(6)  NOT NULL,
        recurrence_rule          TEXT         NULL,
        recurrence_end_date      DATETIME(6)  NULL,
        recurrence_count         INT          NULL,
        parent_event_id          BIGINT       NULL,
        original_start_datetime  DATETIME(6)  NULL,
        excluded_dates           TEXT         NULL,
        created_at               DATETIME     NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at               DATETIME     NOT NULL DEFAULT CURRENT_TIMESTAMP ON UPDATE CURRENT_TIMESTAMP,
        INDEX idx_events_user_start (user_id, start_datetime),
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE,
        FOREIGN KEY (parent_event_id) REFERENCES events(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tags (
        id                   INT          AUTO_INCREMENT PRIMARY KEY,
        user_id              CHAR(8)      NOT NULL,
        name                 VARCHAR(100) NOT NULL,
        UNIQUE (user_id, name),
        FOREIGN KEY (user_id) REFERENCES users(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS event_tags (
        event_id             BIGINT       NOT NULL,
        tag_id               INT          NOT NULL,
        PRIMARY KEY (event_id, tag_id),
        FOREIGN KEY (event_id) REFERENCES events(id) ON DELETE CASCADE,
        FOREIGN KEY (tag_id) REFERENCES tags(id) ON DELETE CASCADE
    )
    """,
]


def check_db_is_setup():
    """Check if the calendar database exists and contains all required tables."""
    db_cursor = database.get_server_cursor()
    db_cursor.execute("SHOW DATABASES")
    databases = [db[0] for db in db_cursor.fetchall()]

    if database.MYSQL_DATABASE not in databases:
        return False

    db_cursor.execute(f"USE {database.MYSQL_DATABASE}")
    db_cursor.execute("SHOW TABLES")
    tables = [table[0] for table in db_cursor.fetchall()]

    database.get_connection().commit()

    return all(table in tables for table in REQUIRED_TABLES)


def create_db_and_scheme():
    """Create the calendar database and all necessary tables."""
    db_cursor = database.get_server_cursor()

    db_cursor.execute(f"CREATE DATABASE IF NOT EXISTS {database.MYSQL_DATABASE}")
    db_cursor.execute(f"USE {database.MYSQL_DATABASE}")
    for statement in SCHEMA:
        db_cursor.execute(statement)

    database.get_connection().commit()


def create_admin_user():
    """Create the initial admin user and log credentials."""
    db_cursor = database.get_cursor()

    # Generate admin credentials
    admin_id = utils.generate_user_id()
    admin_api_key = utils.generate_api_key()
    api_key_hash = utils.hash_api_key(admin_api_key)

    db_cursor.execute(
        "INSERT INTO users (id, api_key_hash, role) VALUES (%s, %s, 'admin')",
        (admin_id, api_key_hash)
    )

    database.get_connection().commit()

    # Log credentials (will appear in Docker logs)
    logger.info("=" * 60)
    logger.info("CALENDAR-API ADMIN USER CREATED")
    logger.info(f"Admin User ID: {admin_id}")
    logger.info(f"Admin API Key: {admin_api_key}")
    logger.info("SAVE THESE CREDENTIALS - THEY WILL NOT BE SHOWN AGAIN!")
    logger.info("=" * 60)

    return admin_id, admin_api_key


def setup_database():
    """Ensure the database is configured, create schema and admin user if needed."""
    logger.info("Checking if the database is set up...")
    if not check_db_is_setup():
        logger.info("Database not found or incomplete. Setting up...")
        create_db_and_scheme()
        logger.info("Database and tables created successfully.")
        create_admin_user()
        logger.info("Admin user created successfully.")
        return True

    logger.info("Database is already set up.")
    return False
