import click
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from config import config

db = SQLAlchemy()


def create_app(config_name='default'):
    """Application factory: creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from retailpos.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    # ── Blueprints ────────────────────────────────────────────────
    from retailpos.auth import auth as auth_blueprint
    app.register_blueprint(auth_blueprint, url_prefix='/auth')

    from retailpos.catalog import catalog as catalog_blueprint
    app.register_blueprint(catalog_blueprint, url_prefix='/api')

    from retailpos.members import members as members_blueprint
    app.register_blueprint(members_blueprint, url_prefix='/api')

    from retailpos.sales import sales as sales_blueprint
    app.register_blueprint(sales_blueprint, url_prefix='/api')

    from retailpos.pos import pos as pos_blueprint
    app.register_blueprint(pos_blueprint, url_prefix='/pos')

    # ── Error Handlers ────────────────────────────────────────────
    @app.errorhandler(401)
    def unauthorized(e):
        return jsonify({'error': 'Authentication required'}), 401

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({'error': 'Access denied'}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({'error': 'Server error'}), 500

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    return app


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all tables, the invoice sequence for this year and the general customer."""
        from datetime import date
        from retailpos.sales.invoice import sequence_for
        from retailpos.sales.models import InvoiceSequence
        from retailpos.members.models import ensure_general_customer

        db.create_all()
        click.echo('✅  Database tables created.')

        # Pre-seed the invoice sequence row so the first sale of the year
        # does not INSERT inside its own transaction.
        year = date.today().year
        if not db.session.get(InvoiceSequence, year):
            sequence_for(db.session, year)
            db.session.commit()
            click.echo(f'✅  Invoice sequence seeded for {year} (starts at 0).')
        else:
            click.echo(f'ℹ️   Invoice sequence for {year} already exists.')

        member = ensure_general_customer(app.config['GENERAL_CUSTOMER_NAME'])
        click.echo(f'✅  General customer ready (id {member.id}).')

    @app.cli.command('show-sequences')
    def show_sequences():
        """Show current invoice sequence counters (diagnostic)."""
        from retailpos.sales.invoice import format_invoice_number
        from retailpos.sales.models import InvoiceSequence
        rows = InvoiceSequence.query.order_by(InvoiceSequence.year.desc()).all()
        if not rows:
            click.echo('No sequence rows found. Run flask init-db first.')
            return
        click.echo(f'{"Year":<8} {"Last Seq":<12} {"Next Invoice"}')
        click.echo('─' * 35)
        for row in rows:
            next_inv = format_invoice_number(row.year, row.last_seq + 1)
            click.echo(f'{row.year:<8} {row.last_seq:<12} {next_inv}')

    @app.cli.command('create-user')
    @click.option('--name',     prompt='Full name',  help='Full name')
    @click.option('--username', prompt='Username',   help='Login name')
    @click.option('--role', type=click.Choice(['admin', 'cashier', 'attendant']),
                  default='cashier', show_default=True)
    @click.option('--password', prompt=True, hide_input=True,
                  confirmation_prompt=True, help='Password')
    def create_user(name, username, role, password):
        """Create an admin, cashier or attendant user."""
        from retailpos.auth.models import User, RoleEnum

        if User.query.filter_by(username=username).first():
            click.echo(f'⚠️  User "{username}" already exists.')
            return

        user = User(name=name, username=username, role=RoleEnum(role))
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        click.echo(f'✅  {role.title()} user "{username}" created successfully.')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Populate database with demo users, members and tiered products."""
        from decimal import Decimal
        from retailpos.auth.models import User, RoleEnum
        from retailpos.catalog.models import Product, PriceTier, InventoryLog
        from retailpos.members.models import Member, ensure_general_customer

        click.echo("🌱 Seeding demo data...")
        db.create_all()

        demo_users = [
            ('admin',     'Admin User',     RoleEnum.admin,     'demo123'),
            ('cashier1',  'Sarah Cashier',  RoleEnum.cashier,   '123'),
            ('attendant1', 'Budi Attendant', RoleEnum.attendant, '123'),
            ('attendant2', 'Rina Attendant', RoleEnum.attendant, '123'),
        ]
        for username, name, role, password in demo_users:
            if not User.query.filter_by(username=username).first():
                u = User(name=name, username=username, role=role)
                u.set_password(password)
                db.session.add(u)
        db.session.commit()
        click.echo("✅ Users created (admin/demo123, cashier1/123).")

        ensure_general_customer(app.config['GENERAL_CUSTOMER_NAME'])
        if Member.query.filter_by(is_general=False).count() == 0:
            db.session.add_all([
                Member(name='Andi Wijaya', phone='081200000001',
                       discount=Decimal('5'), membership_type='SILVER'),
                Member(name='Siti Rahma', phone='081200000002',
                       discount=Decimal('10'), membership_type='GOLD'),
            ])
            db.session.commit()
            click.echo("✅ Members seeded.")

        if Product.query.count() == 0:
            catalog = [
                ('Mineral Water 600ml', 'MW600', 120, [(1, 4000), (12, 3500), (48, 3200)]),
                ('Instant Noodles',     'IN001', 200, [(1, 3500), (40, 3100)]),
                ('Cooking Oil 1L',      'CO1L',   30, [(1, 18000), (6, 17200)]),
                ('Rice 5kg',            'RC5K',    4, [(1, 72000)]),
            ]
            for name, code, stock, tiers in catalog:
                p = Product(name=name, product_code=code, stock=stock)
                p.price_tiers = [PriceTier(min_qty=q, price=Decimal(price)) for q, price in tiers]
                db.session.add(p)
                db.session.flush()
                db.session.add(InventoryLog(product_id=p.id, old_stock=0, new_stock=stock,
                                            reason='Initial Demo Stock'))
            db.session.commit()
            click.echo("✅ Products seeded.")

        click.echo("✅ Demo seed complete.")
