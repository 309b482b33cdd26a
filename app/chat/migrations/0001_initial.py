import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ChatRoom",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "room_id",
                    models.CharField(
                        help_text="Deterministic identifier: listing_{listingId}_buyer_{buyerId}",
                        max_length=120,
                        unique=True,
                    ),
                ),
                (
                    "listing_id",
                    models.UUIDField(
                        db_index=True,
                        help_text="Listing this conversation is about",
                    ),
                ),
                (
                    "last_message_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Timestamp of the most recent message (null if none yet)",
                        null=True,
                    ),
                ),
                (
                    "buyer",
                    models.ForeignKey(
                        help_text="User who started the conversation",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rooms_as_buyer",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "seller",
                    models.ForeignKey(
                        help_text="Listing owner when the room was created",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="rooms_as_seller",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_room",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["seller", "-last_message_at"],
                        name="chat_room_seller_activity_idx",
                    ),
                    models.Index(
                        fields=["buyer", "-last_message_at"],
                        name="chat_room_buyer_activity_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("listing_id", "buyer"),
                        name="unique_room_per_listing_buyer",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("seller", models.F("buyer")), _negated=True),
                        name="room_seller_not_buyer",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("content", models.TextField(help_text="Message text")),
                (
                    "timestamp",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="When the message was persisted",
                    ),
                ),
                (
                    "is_read",
                    models.BooleanField(
                        default=False,
                        help_text="Whether the recipient has read this message",
                    ),
                ),
                (
                    "room",
                    models.ForeignKey(
                        db_column="room_id",
                        help_text="Room this message belongs to",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="chat.chatroom",
                        to_field="room_id",
                    ),
                ),
                (
                    "sender",
                    models.ForeignKey(
                        help_text="User who sent this message",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="chat_messages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "db_table": "chat_message",
                "ordering": ["timestamp", "id"],
                "indexes": [
                    models.Index(
                        fields=["room", "timestamp", "id"],
                        name="chat_msg_room_time_idx",
                    ),
                    models.Index(
                        fields=["room", "sender", "is_read"],
                        name="chat_msg_unread_idx",
                    ),
                ],
            },
        ),
    ]
