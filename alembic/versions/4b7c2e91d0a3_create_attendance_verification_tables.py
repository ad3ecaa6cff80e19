from alembic import op
import sqlalchemy as sa

revision = '4b7c2e91d0a3'
down_revision = None
branch_labels = None
depends_on = None

attendancestatus_enum = sa.Enum('pending', 'present', 'absent', name='attendancestatus')
verificationmethod_enum = sa.Enum('manual', 'rfid', 'location', name='verificationmethod')
profile_role_enum = sa.Enum('student', 'teacher', name='profile_role')
notification_type_enum = sa.Enum(
    'verification_pending', 'attendance_confirmed', 'attendance_failed',
    name='attendance_notification_type',
)


def upgrade():
    op.create_table(
        'subjects',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('code', sa.String(length=32), nullable=False, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'classrooms',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'profiles',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), nullable=False, unique=True),
        sa.Column('full_name', sa.Text(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('role', profile_role_enum, nullable=False, server_default='student'),
        sa.Column('rfid_tag', sa.String(length=64), nullable=True, unique=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_profiles_rfid_tag', 'profiles', ['rfid_tag'])

    op.create_table(
        'attendance_sessions',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('subject_id', sa.Uuid(), nullable=False),
        sa.Column('classroom_id', sa.Uuid(), nullable=False),
        sa.Column('reader_device_id', sa.String(length=64), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['subject_id'], ['subjects.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['classroom_id'], ['classrooms.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_attendance_sessions_reader_device_id', 'attendance_sessions', ['reader_device_id'])

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('session_id', sa.Uuid(), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('status', attendancestatus_enum, nullable=False),
        sa.Column('verification_method', verificationmethod_enum, nullable=True),
        sa.Column('reader_latitude', sa.Float(), nullable=True),
        sa.Column('reader_longitude', sa.Float(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('confirmer_latitude', sa.Float(), nullable=True),
        sa.Column('confirmer_longitude', sa.Float(), nullable=True),
        sa.Column('distance_meters', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['attendance_sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['profiles.user_id'], ondelete='CASCADE'),
        sa.UniqueConstraint('session_id', 'student_id', name='uq_attendance_session_student'),
    )

    op.create_table(
        'verification_tokens',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('token', sa.String(length=64), nullable=False),
        sa.Column('session_id', sa.Uuid(), nullable=False),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('reader_device_id', sa.String(length=64), nullable=True),
        sa.Column('reader_latitude', sa.Float(), nullable=False),
        sa.Column('reader_longitude', sa.Float(), nullable=False),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('consumed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('consumed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['attendance_sessions.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['student_id'], ['profiles.user_id'], ondelete='CASCADE'),
    )
    op.create_index('ix_verification_tokens_token', 'verification_tokens', ['token'], unique=True)
    op.create_index(
        'ix_verification_tokens_active',
        'verification_tokens',
        ['session_id', 'student_id', 'consumed', 'expires_at'],
    )

    op.create_table(
        'attendance_notifications',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.Uuid(), nullable=False),
        sa.Column('session_id', sa.Uuid(), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', notification_type_enum, nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('link', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(['student_id'], ['profiles.user_id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['session_id'], ['attendance_sessions.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_attendance_notifications_student_id', 'attendance_notifications', ['student_id'])


def downgrade():
    op.drop_table('attendance_notifications')
    op.drop_table('verification_tokens')
    op.drop_table('attendance_records')
    op.drop_table('attendance_sessions')
    op.drop_table('profiles')
    op.drop_table('classrooms')
    op.drop_table('subjects')
    bind = op.get_bind()
    for enum_type in (notification_type_enum, verificationmethod_enum, attendancestatus_enum, profile_role_enum):
        enum_type.drop(bind, checkfirst=True)
