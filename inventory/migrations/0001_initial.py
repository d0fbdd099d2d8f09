import uuid

import django.core.validators
import django.db.models.deletion
import pgvector.django
from django.db import migrations, models

HNSW_INDEX = 'product_embedding_hnsw_idx'


def create_hnsw_index(apps, schema_editor):
    # HNSW is a pgvector access method; other backends rank without an index
    if schema_editor.connection.vendor != 'postgresql':
        return
    schema_editor.execute(
        f'CREATE INDEX IF NOT EXISTS {HNSW_INDEX} ON products USING hnsw (embedding vector_cosine_ops)'
    )


def drop_hnsw_index(apps, schema_editor):
    if schema_editor.connection.vendor != 'postgresql':
        return
    schema_editor.execute(f'DROP INDEX IF EXISTS {HNSW_INDEX}')


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
    ]

    operations = [
        pgvector.django.VectorExtension(),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('price', models.PositiveIntegerField(help_text='Unit price in the minor currency unit', validators=[django.core.validators.MinValueValidator(0)])),
                ('stock', models.PositiveIntegerField(default=0, validators=[django.core.validators.MinValueValidator(0)])),
                ('description', models.TextField(max_length=5000)),
                ('image_url', models.URLField(blank=True, null=True)),
                ('embedding', pgvector.django.VectorField(blank=True, dimensions=768, editable=False, help_text='Semantic vector of the description', null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='products', to='accounts.business')),
            ],
            options={
                'db_table': 'products',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['business', 'created_at'], name='product_business_created_idx')],
            },
        ),
        migrations.RunPython(create_hnsw_index, drop_hnsw_index),
    ]
