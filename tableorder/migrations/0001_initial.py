"""
Initial migration for Table Order module.
"""

from django.db import migrations, models
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Tenant',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('handle', models.SlugField(unique=True, verbose_name='Handle')),
                ('display_name', models.CharField(max_length=200, verbose_name='Restaurant Name')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('owner_password', models.CharField(blank=True, max_length=128, verbose_name='Owner Password')),
                ('chef_password', models.CharField(blank=True, max_length=128, verbose_name='Chef Password')),
                ('waiter_password', models.CharField(blank=True, max_length=128, verbose_name='Waiter Password')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Tenant',
                'verbose_name_plural': 'Tenants',
                'db_table': 'tableorder_tenant',
                'ordering': ['display_name'],
            },
        ),
        migrations.CreateModel(
            name='Dish',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('category', models.CharField(db_index=True, max_length=100, verbose_name='Category')),
                ('description', models.TextField(blank=True, default='')),
                ('price', models.PositiveIntegerField(default=0, help_text='Minor currency units', verbose_name='Price')),
                ('is_available', models.BooleanField(default=True, verbose_name='Available')),
                ('customizations', models.JSONField(blank=True, default=list, help_text='Options like "No Onion" or "Extra Spicy"', verbose_name='Customizations')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='tableorder.tenant', verbose_name='Tenant')),
            ],
            options={
                'verbose_name': 'Dish',
                'verbose_name_plural': 'Dishes',
                'db_table': 'tableorder_dish',
                'ordering': ['category', 'name'],
                'abstract': False,
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('order_number', models.CharField(db_index=True, max_length=50, verbose_name='Order Number')),
                ('table_number', models.CharField(max_length=20, verbose_name='Table')),
                ('customer_name', models.CharField(max_length=120, verbose_name='Customer Name')),
                ('total_amount', models.PositiveIntegerField(default=0, help_text='Minor currency units, computed when the order is placed', verbose_name='Total')),
                ('payment_method', models.CharField(choices=[('CASH', 'Cash'), ('ONLINE', 'Online')], default='CASH', max_length=10, verbose_name='Payment Method')),
                ('payment_status', models.CharField(choices=[('PENDING', 'Pending'), ('PAID', 'Paid')], default='PENDING', max_length=10, verbose_name='Payment Status')),
                ('status', models.CharField(choices=[('PLACED', 'Placed'), ('COOKING', 'Cooking'), ('READY', 'Ready'), ('SERVED', 'Served')], default='PLACED', max_length=10, verbose_name='Status')),
                ('cooking_at', models.DateTimeField(blank=True, null=True, verbose_name='Cooking Since')),
                ('ready_at', models.DateTimeField(blank=True, null=True, verbose_name='Ready At')),
                ('served_at', models.DateTimeField(blank=True, null=True, verbose_name='Served At')),
                ('paid_at', models.DateTimeField(blank=True, null=True, verbose_name='Paid At')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='tableorder.tenant', verbose_name='Tenant')),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'db_table': 'tableorder_order',
                'ordering': ['-created_at'],
                'abstract': False,
                'indexes': [
                    models.Index(fields=['tenant', 'status'], name='tableorder_tenant_status_idx'),
                    models.Index(fields=['tenant', 'created_at'], name='tableorder_tenant_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('position', models.PositiveIntegerField(default=0)),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('unit_price', models.PositiveIntegerField(default=0, verbose_name='Unit Price')),
                ('quantity', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)], verbose_name='Quantity')),
                ('customizations', models.JSONField(blank=True, default=list, verbose_name='Customizations')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='tableorder.order', verbose_name='Order')),
            ],
            options={
                'verbose_name': 'Order Item',
                'verbose_name_plural': 'Order Items',
                'db_table': 'tableorder_order_item',
                'ordering': ['position'],
            },
        ),
        migrations.CreateModel(
            name='ServiceCall',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('table_number', models.CharField(max_length=20, verbose_name='Table')),
                ('call_type', models.CharField(choices=[('HELP', 'Help'), ('BILL', 'Bill'), ('WATER', 'Water')], default='HELP', max_length=10, verbose_name='Type')),
                ('tenant', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='+', to='tableorder.tenant', verbose_name='Tenant')),
            ],
            options={
                'verbose_name': 'Service Call',
                'verbose_name_plural': 'Service Calls',
                'db_table': 'tableorder_service_call',
                'ordering': ['created_at'],
                'abstract': False,
            },
        ),
    ]
