from sqlalchemy import Column, Float, ForeignKey, Index, Integer, Text, UniqueConstraint, text

from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Profiles(Base):
    __tablename__ = 'profiles'
    __table_args__ = (
        UniqueConstraint('email', 'user_type'),
    )

    id = Column(Integer, primary_key=True)
    email = Column(Text, nullable=False)
    password_hash = Column(Text, nullable=False)
    full_name = Column(Text, nullable=False)
    user_type = Column(Text, nullable=False, server_default=text("'tutor'"))
    phone = Column(Text)
    bio = Column(Text)
    avatar_url = Column(Text)
    address = Column(Text)
    city = Column(Text)
    state = Column(Text)
    zip_code = Column(Text)
    latitude = Column(Float)
    longitude = Column(Float)
    specialty = Column(Text)
    crmv = Column(Text)
    cnpj = Column(Text)
    company_name = Column(Text)
    years_experience = Column(Integer)
    home_service_radius_km = Column(Float)
    payment_methods = Column(Text, nullable=False, server_default=text("'[]'"))
    verification_status = Column(Text, nullable=False, server_default=text("'not_verified'"))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    roles = relationship('UserRoles', back_populates='profile', cascade='all, delete-orphan')
    services = relationship('Services', back_populates='profile')
    availability = relationship('Availability', back_populates='profile')
    pets = relationship('Pets', back_populates='tutor')
    credits = relationship('ProfessionalCredits', back_populates='profile', uselist=False)


class UserRoles(Base):
    __tablename__ = 'user_roles'
    __table_args__ = (
        UniqueConstraint('profile_id', 'role'),
    )

    id = Column(Integer, primary_key=True)
    profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    role = Column(Text, nullable=False, server_default=text("'user'"))

    profile = relationship('Profiles', back_populates='roles')


class Pets(Base):
    __tablename__ = 'pets'

    id = Column(Integer, primary_key=True)
    tutor_profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    species = Column(Text, nullable=False)
    breed = Column(Text)
    birth_date = Column(Text)
    weight = Column(Float)
    notes = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    tutor = relationship('Profiles', back_populates='pets')


class Services(Base):
    __tablename__ = 'services'

    id = Column(Integer, primary_key=True)
    profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text)
    duration_minutes = Column(Integer, nullable=False, server_default=text('30'))
    price = Column(Float)
    location_type = Column(Text, nullable=False, server_default=text("'clinic'"))
    is_active = Column(Integer, nullable=False, server_default=text('1'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    profile = relationship('Profiles', back_populates='services')


class Availability(Base):
    __tablename__ = 'availability'

    id = Column(Integer, primary_key=True)
    profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    day_of_week = Column(Text, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    location_type = Column(Text, nullable=False, server_default=text("'clinic'"))
    is_available_for_shift = Column(Integer, nullable=False, server_default=text('0'))
    slot_duration_minutes = Column(Integer, nullable=False, server_default=text('30'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    profile = relationship('Profiles', back_populates='availability')


class BlockedDates(Base):
    __tablename__ = 'blocked_dates'
    __table_args__ = (
        UniqueConstraint('profile_id', 'blocked_date'),
    )

    id = Column(Integer, primary_key=True)
    profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    blocked_date = Column(Text, nullable=False)
    reason = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class Appointments(Base):
    __tablename__ = 'appointments'
    __table_args__ = (
        # one live appointment per professional start time
        Index(
            'uq_appointments_active_slot',
            'professional_profile_id', 'appointment_date', 'start_time',
            unique=True,
            sqlite_where=text("status IN ('pending', 'confirmed')"),
            postgresql_where=text("status IN ('pending', 'confirmed')"),
        ),
    )

    id = Column(Integer, primary_key=True)
    tutor_profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    professional_profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    pet_id = Column(ForeignKey('pets.id', ondelete='SET NULL'))
    service_id = Column(ForeignKey('services.id', ondelete='SET NULL'))
    appointment_date = Column(Text, nullable=False)
    start_time = Column(Text, nullable=False)
    end_time = Column(Text, nullable=False)
    location_type = Column(Text, nullable=False, server_default=text("'clinic'"))
    location_address = Column(Text)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    tutor_notes = Column(Text)
    professional_notes = Column(Text)
    price = Column(Float)
    confirmed_at = Column(Text)
    cancelled_at = Column(Text)
    cancelled_by = Column(ForeignKey('profiles.id', ondelete='SET NULL'))
    cancellation_reason = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    tutor = relationship('Profiles', foreign_keys=[tutor_profile_id])
    professional = relationship('Profiles', foreign_keys=[professional_profile_id])
    pet = relationship('Pets')
    service = relationship('Services')


class AppointmentConfirmations(Base):
    __tablename__ = 'appointment_confirmations'

    id = Column(Integer, primary_key=True)
    appointment_id = Column(ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False)
    token = Column(Text, nullable=False, unique=True)
    type = Column(Text, nullable=False, server_default=text("'confirmation_request'"))
    created_at = Column(Text, nullable=False)
    confirmed_at = Column(Text)
    reschedule_requested_at = Column(Text)

    appointment = relationship('Appointments')


class ProfessionalCredits(Base):
    __tablename__ = 'professional_credits'

    id = Column(Integer, primary_key=True)
    profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False, unique=True)
    total_credits = Column(Integer, nullable=False, server_default=text('0'))
    used_credits = Column(Integer, nullable=False, server_default=text('0'))
    remaining_credits = Column(Integer, nullable=False, server_default=text('0'))
    status = Column(Text, nullable=False, server_default=text("'active'"))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))

    profile = relationship('Profiles', back_populates='credits')


class LostAppointments(Base):
    __tablename__ = 'lost_appointments'

    id = Column(Integer, primary_key=True)
    professional_profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    tutor_profile_id = Column(ForeignKey('profiles.id', ondelete='SET NULL'))
    service_id = Column(ForeignKey('services.id', ondelete='SET NULL'))
    reason = Column(Text, nullable=False, server_default=text("'no_credits'"))
    attempted_date = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class UserSubscriptions(Base):
    __tablename__ = 'user_subscriptions'

    id = Column(Integer, primary_key=True)
    profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    plan_id = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    current_period_start = Column(Text)
    current_period_end = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
    updated_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class Reviews(Base):
    __tablename__ = 'reviews'

    id = Column(Integer, primary_key=True)
    appointment_id = Column(ForeignKey('appointments.id', ondelete='CASCADE'), nullable=False, unique=True)
    tutor_profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    professional_profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text)
    is_approved = Column(Integer, nullable=False, server_default=text('0'))
    is_moderated = Column(Integer, nullable=False, server_default=text('0'))
    moderated_by = Column(ForeignKey('profiles.id', ondelete='SET NULL'))
    moderated_at = Column(Text)
    moderation_notes = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class FavoriteProfessionals(Base):
    __tablename__ = 'favorite_professionals'
    __table_args__ = (
        UniqueConstraint('tutor_profile_id', 'professional_profile_id'),
    )

    id = Column(Integer, primary_key=True)
    tutor_profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    professional_profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class UserNotifications(Base):
    __tablename__ = 'user_notifications'

    id = Column(Integer, primary_key=True)
    profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(Text, nullable=False, server_default=text("'info'"))
    is_read = Column(Integer, nullable=False, server_default=text('0'))
    read_at = Column(Text)
    action_url = Column(Text)
    action_label = Column(Text)
    related_appointment_id = Column(ForeignKey('appointments.id', ondelete='SET NULL'))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class Documents(Base):
    __tablename__ = 'documents'

    id = Column(Integer, primary_key=True)
    profile_id = Column(ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False)
    document_type = Column(Text, nullable=False)
    file_url = Column(Text, nullable=False)
    status = Column(Text, nullable=False, server_default=text("'pending'"))
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))


class AdminLogs(Base):
    __tablename__ = 'admin_logs'

    id = Column(Integer, primary_key=True)
    admin_profile_id = Column(ForeignKey('profiles.id', ondelete='SET NULL'))
    action = Column(Text, nullable=False)
    target_type = Column(Text)
    target_id = Column(Integer)
    details = Column(Text)
    created_at = Column(Text, server_default=text('CURRENT_TIMESTAMP'))
