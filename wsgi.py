from retailpos import create_app, db
import os

config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)

# ── Startup ──
# Tables, the invoice sequence and the general customer must exist before
# the first till request.
with app.app_context():
    from retailpos.members.models import ensure_general_customer
    db.create_all()
    member = ensure_general_customer(app.config['GENERAL_CUSTOMER_NAME'])
    app.logger.info(f"General customer ready (id {member.id})")

if __name__ == "__main__":
    app.run()
