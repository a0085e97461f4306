from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SchoolClass",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=50, unique=True)),
                ("is_active", models.BooleanField(default=True)),
            ],
            options={
                "ordering": ["name"],
                "verbose_name_plural": "School classes",
            },
        ),
        migrations.CreateModel(
            name="Subject",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("code", models.CharField(max_length=20, unique=True)),
                ("description", models.TextField(blank=True)),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="ClassTermInfo",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("academic_year", models.CharField(max_length=20)),
                ("term", models.CharField(choices=[("first", "First Term"), ("second", "Second Term"), ("third", "Third Term")], max_length=10)),
                ("class_population", models.PositiveIntegerField(default=0)),
                ("ranked_at", models.DateTimeField(blank=True, null=True)),
                ("school_class", models.ForeignKey(on_delete=models.CASCADE, related_name="term_info", to="academics.schoolclass")),
            ],
            options={
                "unique_together": {("school_class", "academic_year", "term")},
            },
        ),
    ]
