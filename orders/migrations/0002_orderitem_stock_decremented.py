from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('orders', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='orderitem',
            name='stock_decremented',
            field=models.BooleanField(default=False, help_text='Stock for this line was taken and has not been put back'),
        ),
    ]
