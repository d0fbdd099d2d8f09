import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='ChatSession',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('business', models.OneToOneField(help_text='Unique: a store never has more than one chat session', on_delete=django.db.models.deletion.CASCADE, related_name='chat_session', to='accounts.business')),
            ],
            options={
                'db_table': 'ai_chat_sessions',
                'verbose_name': 'Chat Session',
                'verbose_name_plural': 'Chat Sessions',
            },
        ),
        migrations.CreateModel(
            name='ChatMessage',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('role', models.CharField(choices=[('user', 'User'), ('assistant', 'Assistant')], max_length=20)),
                ('content', models.TextField()),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('session', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='ai_features.chatsession')),
            ],
            options={
                'db_table': 'ai_chat_messages',
                'ordering': ['created_at', 'id'],
                'verbose_name': 'Chat Message',
                'verbose_name_plural': 'Chat Messages',
                'indexes': [models.Index(fields=['session', 'created_at'], name='chat_message_session_idx')],
            },
        ),
    ]
