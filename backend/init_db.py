"""Initialize database tables, optionally with a demo conversation and loan."""
import sys
from sqlalchemy.orm import Session
from hippo.database import SessionLocal, engine, Base
from hippo.models import Conversation
from hippo.services.conversations import ConversationRegistry
from hippo.services.loans import LoanRegistry
from hippo.services.messages import MessageLog


def init_database(seed: bool = False):
    """Create all tables; with `seed`, add one demo thread and loan if the database is empty."""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    if not seed:
        print("✓ Tables ready")
        return

    db: Session = SessionLocal()

    try:
        if db.query(Conversation).first():
            print("✓ Database already has data, skipping demo seed")
            return

        conversation, _ = ConversationRegistry(db).create_or_get(
            item_id="demo-item",
            item_name="Cordless drill",
            owner_id="demo-owner",
            owner_name="Ada",
            borrower_id="demo-borrower",
            borrower_name="Bea"
        )
        MessageLog(db).append(
            conversation.id,
            sender_id="demo-borrower",
            sender_name="Bea",
            content="Hi! Could I borrow the drill this weekend?"
        )
        print(f"✓ Created conversation: {conversation.id}")

        loan = LoanRegistry(db).create(
            item_id="demo-item",
            item_name="Cordless drill",
            item_description="18V with two batteries",
            item_image_path="",
            owner_id="demo-owner",
            owner_name="Ada",
            borrower_id="demo-borrower",
            borrower_name="Bea",
            item_value=100
        )
        print(f"✓ Created loan: {loan.id}")

        print("\n" + "="*50)
        print("✓ Database initialized successfully!")
        print("="*50)

    except Exception as e:
        print(f"✗ Error initializing database: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    init_database(seed="--seed" in sys.argv[1:])
