import os

from app import create_app, db

app = create_app()

with app.app_context():
    # Create database tables
    db.create_all()

    # Ensure default tenant, units and admin user exist
    from models import User, Company
    from models.uom import UnitOfMeasure, UOMConversion

    company = Company.create_default_company()
    UnitOfMeasure.ensure_default_units()
    UOMConversion.ensure_default_conversions()

    admin_user = User.query.filter_by(username='admin').first()
    if not admin_user:
        admin_user = User(
            username='admin',
            email='admin@stockwise.local',
            role='admin',
            company_id=company.id
        )
        admin_user.set_password('admin123')
        db.session.add(admin_user)
        db.session.commit()

if __name__ == '__main__':
    app.run(host=os.environ.get('HOST', '127.0.0.1'), port=int(os.environ.get('PORT', 5000)),
            debug=app.config.get('DEBUG', False))
