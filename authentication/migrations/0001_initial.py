import django.contrib.auth.models
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='Role',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Unique machine-friendly role identifier, e.g. ADMIN, VENDOR.', max_length=32, unique=True, validators=[django.core.validators.RegexValidator(message='Role names must be uppercase letters and underscores only (3-32 chars).', regex='^[A-Z_]{3,32}$')])),
                ('display_name', models.CharField(help_text='Human readable role label shown in UIs.', max_length=64)),
                ('description', models.TextField(blank=True, help_text='Context about what this role can do and when to grant it.')),
                ('is_active', models.BooleanField(default=True, help_text='Inactive roles remain for audit history but cannot be newly assigned.')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ('name',),
            },
        ),
        migrations.CreateModel(
            name='User',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('first_name', models.CharField(blank=True, max_length=150, verbose_name='first name')),
                ('last_name', models.CharField(blank=True, max_length=150, verbose_name='last name')),
                ('is_staff', models.BooleanField(default=False, help_text='Designates whether the user can log into this admin site.', verbose_name='staff status')),
                ('is_active', models.BooleanField(default=True, help_text='Designates whether this user should be treated as active. Unselect this instead of deleting accounts.', verbose_name='active')),
                ('date_joined', models.DateTimeField(default=django.utils.timezone.now, verbose_name='date joined')),
                ('username', models.CharField(help_text='Letters, numbers, underscores, periods and hyphens allowed.', max_length=150, unique=True, validators=[django.core.validators.RegexValidator(message='Username may include letters, numbers, underscores, periods or hyphens.', regex='^[A-Za-z0-9_.-]{3,150}$')])),
                ('email', models.EmailField(max_length=254, unique=True)),
                ('external_id', models.CharField(blank=True, help_text='Subject identifier issued by the identity provider.', max_length=191, null=True, unique=True)),
                ('image_url', models.URLField(blank=True, max_length=500)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'ordering': ('-created_at',),
            },
            managers=[
                ('objects', django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='UserRole',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('assigned_at', models.DateTimeField(auto_now_add=True)),
                ('assigned_by', models.ForeignKey(blank=True, help_text='Administrator who granted this role.', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='roles_granted', to=settings.AUTH_USER_MODEL)),
                ('role', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='role_memberships', to='authentication.role')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='role_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'User role assignment',
                'verbose_name_plural': 'User role assignments',
                'ordering': ('-assigned_at',),
                'unique_together': {('user', 'role')},
            },
        ),
        migrations.AddField(
            model_name='user',
            name='roles',
            field=models.ManyToManyField(blank=True, help_text='Collection of authorization roles granted to this account.', related_name='users', through='authentication.UserRole', to='authentication.role'),
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['email'], name='authenticat_email_7a3d2e_idx'),
        ),
        migrations.AddIndex(
            model_name='user',
            index=models.Index(fields=['external_id'], name='authenticat_externa_5c1b9f_idx'),
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(db_index=True, help_text='Action type: CANCEL, UPDATE_STATUS, PAYMENT_IPN, etc.', max_length=100)),
                ('resource_type', models.CharField(db_index=True, help_text='Resource type: USER, PRODUCT, ORDER, PAYMENT, etc.', max_length=100)),
                ('resource_id', models.CharField(blank=True, help_text='ID of the affected resource (if applicable)', max_length=100, null=True)),
                ('ip_address', models.GenericIPAddressField(blank=True, help_text='IP address of the client making the request', null=True)),
                ('user_agent', models.TextField(blank=True, help_text='User agent string from the HTTP request')),
                ('request_path', models.CharField(blank=True, help_text='URL path of the request', max_length=500)),
                ('request_method', models.CharField(blank=True, help_text='HTTP method: GET, POST, PUT, DELETE, etc.', max_length=10)),
                ('status', models.CharField(choices=[('SUCCESS', 'Success'), ('FAILURE', 'Failure'), ('BLOCKED', 'Blocked')], db_index=True, default='SUCCESS', help_text='Status of the action', max_length=20)),
                ('metadata', models.JSONField(blank=True, default=dict, help_text='Additional event-specific data in JSON format')),
                ('timestamp', models.DateTimeField(auto_now_add=True, db_index=True, help_text='Timestamp when the event occurred')),
                ('user', models.ForeignKey(blank=True, help_text='User who performed the action (null for anonymous events)', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Audit Log',
                'verbose_name_plural': 'Audit Logs',
                'ordering': ['-timestamp'],
                'indexes': [
                    models.Index(fields=['user', 'timestamp'], name='authenticat_user_id_3f0c6a_idx'),
                    models.Index(fields=['action', 'status', 'timestamp'], name='authenticat_action_9b2e41_idx'),
                    models.Index(fields=['resource_type', 'resource_id'], name='authenticat_resourc_d84a17_idx'),
                ],
            },
        ),
    ]
