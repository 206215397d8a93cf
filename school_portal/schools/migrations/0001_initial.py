from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='School',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(help_text='Название школы', max_length=200)),
                ('domain', models.CharField(blank=True, help_text='Поддомен школы (без основного домена)', max_length=63, null=True, unique=True)),
                ('email', models.EmailField(blank=True, help_text='Email поддержки', max_length=254)),
                ('phone', models.CharField(blank=True, help_text='Телефон поддержки', max_length=16)),
                ('address', models.CharField(blank=True, help_text='Адрес', max_length=255)),
                ('tagline', models.CharField(blank=True, help_text='Слоган', max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Школа',
                'verbose_name_plural': 'Школы',
                'ordering': ['id'],
            },
        ),
    ]
